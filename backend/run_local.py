#!/usr/bin/env python3
"""
Run the backend locally - no MinIO or Postgres required.

Usage:
    python run_local.py

This will start the API server at http://localhost:8000 with SQLite and
filesystem storage under ./data.
- API Docs: http://localhost:8000/docs
- Health Check: http://localhost:8000/health
"""

import sys
import os
from pathlib import Path

backend_root = Path(__file__).parent
project_root = backend_root.parent
sys.path.insert(0, str(backend_root))
os.chdir(backend_root)

data_dir = project_root / "data"
data_dir.mkdir(exist_ok=True)

# Set environment for local development
os.environ.setdefault("DATABASE_URL", f"sqlite:///{data_dir}/local_dev.db")
os.environ.setdefault("STORAGE_TYPE", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", str(data_dir / "uploads"))
os.environ["DEBUG"] = "true"


def main():
    print("=" * 60)
    print("  Document Metadata Service - Local Development Server")
    print("=" * 60)
    print()
    print(f"  Database:       {os.environ['DATABASE_URL']}")
    print(f"  Storage:        {os.environ['STORAGE_TYPE']}")
    print("  API URL:        http://localhost:8000")
    print("  API Docs:       http://localhost:8000/docs")
    print("  Health Check:   http://localhost:8000/health")
    print()
    print("  Press Ctrl+C to stop")
    print("=" * 60)
    print()

    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Auto-reload on code changes
        log_level="info",
    )


if __name__ == "__main__":
    main()
