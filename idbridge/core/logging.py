"""Structured logging setup shared by the HTTP app and background handlers."""

import logging
import sys
from collections.abc import Callable, MutableMapping
from typing import Any

import structlog

from idbridge.core.settings import LoggingSettings

Processor = Callable[[Any, str, MutableMapping[str, Any]], MutableMapping[str, Any]]


def _add_service(service_name: str) -> Processor:
    """Stamp every event with the service name."""

    def processor(
        _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure stdlib logging and structlog for JSON or console output."""
    settings = settings or LoggingSettings()
    level = getattr(logging, settings.level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_service(settings.service_name),
    ]
    if settings.format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
