# shared/utils/sentry_config.py
import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
import logging
import os


def is_local():
    """Check if running in local development environment."""
    return os.environ.get("ENV", "") == "local"


def get_sentry_dsn():
    """Get Sentry DSN from environment or return None."""
    return os.environ.get("SENTRY_DSN")


def configure_sentry():
    """Configure Sentry for the daily overview. No-op without SENTRY_DSN."""

    sentry_dsn = get_sentry_dsn()
    if not sentry_dsn:
        return False

    environment = "development" if is_local() else os.getenv("ENVIRONMENT", "production")

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,

        sample_rate=1.0,
        traces_sample_rate=1.0 if environment == "development" else 0.1,

        integrations=[
            LoggingIntegration(
                level=logging.INFO,          # Breadcrumbs from INFO up
                event_level=logging.ERROR    # Send errors as events
            ),
        ],

        release=os.getenv("SENTRY_RELEASE", "unknown"),

        before_send=before_send_filter,

        # PII settings
        send_default_pii=False,  # Session cookie must never leave the machine

        max_breadcrumbs=50,
        attach_stacktrace=True,
    )
    return True


def before_send_filter(event, hint):
    """Filter and enhance events before sending to Sentry"""

    event.setdefault('tags', {})
    event['tags']['project'] = 'lss-daily-overview'

    if 'exception' in event:
        exc_type = event['exception']['values'][0]['type']

        if exc_type in ['KeyboardInterrupt', 'SystemExit']:
            return None

    # Drop request headers (they carry the session cookie)
    request = event.get('request')
    if isinstance(request, dict):
        request.pop('headers', None)
        request.pop('cookies', None)

    return event


def add_pass_context(reference_now: str, viewer_id: str = None):
    """Add aggregation-pass context to Sentry"""
    sentry_sdk.set_tag("overview.reference_day", reference_now[:10])
    sentry_sdk.set_context("overview_pass", {
        "reference_now": reference_now,
        "viewer_id": viewer_id,
    })
