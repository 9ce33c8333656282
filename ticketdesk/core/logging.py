"""Logging and tracing setup for the Ticket Desk API."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ticketdesk.core.config import Settings

APP_LOGGER = "ticketdesk"

_active_provider: TracerProvider | None = None


class EnvironmentFilter(logging.Filter):
    """Stamp every record with the deployment environment."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self.environment
        return True


def build_logging_config(settings: Settings) -> dict[str, Any]:
    level = settings.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "environment": {
                "()": EnvironmentFilter,
                "environment": settings.environment,
            }
        },
        "formatters": {"default": {"format": settings.log_format}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["environment"],
            }
        },
        "loggers": {
            APP_LOGGER: {"level": level},
            "asyncpg": {"level": "WARNING"},
        },
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the logging config and return the ``ticketdesk`` logger."""

    dictConfig(build_logging_config(settings))
    return logging.getLogger(APP_LOGGER)


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas, ignoring malformed items."""

    pairs = (item.split("=", 1) for item in (raw or "").split(",") if "=" in item)
    return {key.strip(): value.strip() for key, value in pairs}


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP tracer provider when tracing is enabled."""

    global _active_provider

    if _active_provider is not None or not settings.otel_enabled:
        return None

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=parse_otlp_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _active_provider = provider
    logging.getLogger(APP_LOGGER).info("Exporting traces as %s", settings.otel_service_name)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _active_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _active_provider:
        _active_provider = None
