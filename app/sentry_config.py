"""
Sentry configuration for error tracking.

Captures unhandled exceptions and failed exports.
"""
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration

from app.config import settings
from app.logging_config import get_logger

logger = get_logger(component="sentry")

# Request headers that carry user credentials
SENSITIVE_HEADERS = {"email", "password", "cookie"}


def configure_sentry():
    """
    Initialize Sentry with FastAPI and httpx integrations.

    Requires SENTRY_DSN environment variable to be set.
    """
    dsn = settings.SENTRY_DSN

    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return

    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            HttpxIntegration(),
        ],
        before_send=lambda event, hint: scrub_credentials(event, hint),
        # Sample rate: capture 10% of transactions for performance monitoring
        traces_sample_rate=0.1,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
        release=settings.APP_VERSION,
    )

    logger.info("sentry_initialized", dsn_prefix=dsn[:20])


def scrub_credentials(event, hint):
    """Drop credential headers from the request attached to an event."""
    headers = (event.get("request") or {}).get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in SENSITIVE_HEADERS:
                headers[name] = "[Filtered]"
    return event


def capture_exception(exc_info=None):
    """
    Capture an exception to Sentry.

    Usage:
        try:
            # some code
        except Exception:
            capture_exception()
    """
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_exception(exc_info)
