"""
Database engine and session factory.

PostgreSQL in deployment, SQLite for local runs and tests. Request handlers
get a session through ``get_db``; the Celery worker opens ``SessionLocal``
directly.
"""

from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.config import settings


def build_engine(database_url: str):
    """Create an engine with pool settings suited to the backend."""
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )

    # Threadpool endpoints and the lifespan hook share one connection
    if url.database in (None, "", ":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields:
        Session: SQLAlchemy session, closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
