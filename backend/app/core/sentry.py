"""
Sentry Integration Module.

Configures Sentry for error tracking and logging integration for the
backend application and the Celery worker.
"""

import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from app.config import settings

logger = logging.getLogger(__name__)


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN. Falls back to settings.SENTRY_DSN.
        environment: Environment name (production, staging, development).
        traces_sample_rate: Performance transaction sample rate.

    Returns:
        bool: True if Sentry was initialized.
    """
    sentry_dsn = dsn or settings.SENTRY_DSN

    if not sentry_dsn:
        logger.warning("Sentry DSN not configured. Error tracking disabled.")
        return False

    env = environment or settings.ENVIRONMENT

    logging_integration = LoggingIntegration(
        level=logging.WARNING,  # Capture warnings and above as breadcrumbs
        event_level=logging.ERROR,  # Send errors as Sentry events
    )

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release="document-metadata-service@1.0.0",
        traces_sample_rate=traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
            logging_integration,
        ],
        send_default_pii=False,
        before_send=before_send_handler,
        before_send_transaction=before_send_transaction_handler,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )

    logger.info(f"Sentry initialized for environment: {env}")
    return True


def before_send_handler(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Process events before sending to Sentry.

    Drops client disconnects and scrubs credentials from request headers.
    """
    if "exc_info" in hint:
        exc_type, exc_value, _ = hint["exc_info"]

        ignored_exceptions = (
            "ConnectionResetError",
            "BrokenPipeError",
            "ClientDisconnected",
        )

        if exc_type.__name__ in ignored_exceptions:
            return None

    if "request" in event:
        headers = event["request"].get("headers", {})
        sensitive_headers = ["authorization", "x-api-key", "cookie"]
        for header in sensitive_headers:
            if header in headers:
                headers[header] = "[Filtered]"

    return event


def before_send_transaction_handler(
    event: Dict[str, Any],
    hint: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Drop transactions for health check and metrics endpoints."""
    transaction_name = event.get("transaction", "")

    ignored_endpoints = [
        "/health",
        "/metrics",
        "/favicon.ico",
    ]

    for endpoint in ignored_endpoints:
        if endpoint in transaction_name:
            return None

    return event


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Capture an exception with additional context.

    Args:
        error: The exception to capture.
        context: Additional context data.
        tags: Tags for categorization.

    Returns:
        Sentry event ID if captured, None otherwise.
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_context(key, value)

        for key, value in (tags or {}).items():
            scope.set_tag(key, value)

        event_id = sentry_sdk.capture_exception(error)

    logger.error(
        f"Exception captured: {type(error).__name__} - {str(error)[:100]}",
        extra={"sentry_event_id": event_id},
    )
    return event_id
