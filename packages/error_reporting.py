import logging
import os

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def init_error_reporting(service_name: str, enable_fastapi: bool = False) -> bool:
    dsn = os.getenv("INGEST_SENTRY_DSN")
    if not dsn:
        return False

    integrations = [LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)]
    if enable_fastapi:
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.starlette import StarletteIntegration

        integrations.extend([FastApiIntegration(), StarletteIntegration()])

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("INGEST_ENV", os.getenv("RUN_MODE", "prod")),
        release=os.getenv("INGEST_RELEASE"),
        traces_sample_rate=_float_env("INGEST_SENTRY_TRACES_SAMPLE_RATE", 0.0),
        integrations=integrations,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", service_name)
    return True


def report_provider_failure(provider: str, exc: BaseException) -> None:
    """Send a pipeline failure to Sentry tagged with the provider.

    No-op when error reporting was never initialised.
    """
    if not sentry_sdk.get_client().is_active():
        return
    sentry_sdk.capture_exception(exc, tags={"provider": provider})
