"""
Shared logging configuration for the pricing access core.

Components obtain loggers with ``get_logger("pricing.<component>")`` and
log event-style messages with key/value context. Collaborators that call
the core per request (token issuance, request filters) can correlate
those events with ``pricing_context``.
"""

import sys
import structlog
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from contextvars import ContextVar

from .config import get_config

# Correlation values supplied by the calling layer
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
saas_name_var: ContextVar[Optional[str]] = ContextVar('saas_name', default=None)

DEFAULT_SERVICE = "pricing"


def build_processors(service_name: str = DEFAULT_SERVICE) -> List[Any]:
    """Processor chain rendering one JSON object per event."""

    def add_default_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
        add_default_service,
        add_correlation_context,
        structlog.processors.JSONRenderer()
    ]


def configure_logging(service_name: str = DEFAULT_SERVICE, log_level: Optional[str] = None) -> None:
    """Configure structured logging; the level defaults to ``PRICING_LOG_LEVEL``."""
    level = (log_level or get_config().log_level).upper()

    structlog.configure(
        processors=build_processors(service_name),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Derive the service from a dotted logger name."""
    # "pricing.parser" -> service "pricing", component "parser"
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        service, component = logger_name.split(".", 1)
        event_dict["service"] = service
        event_dict["component"] = component

    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the request id and pricing in use, when set."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    saas_name = saas_name_var.get()
    if saas_name and "saas_name" not in event_dict:
        event_dict["saas_name"] = saas_name

    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


@contextmanager
def pricing_context(saas_name: Optional[str] = None, request_id: Optional[str] = None) -> Iterator[str]:
    """Correlate every event logged inside the block; yields the request id."""
    request_token = request_id_var.set(request_id or str(uuid.uuid4()))
    saas_token = saas_name_var.set(saas_name)
    try:
        yield request_id_var.get()
    finally:
        saas_name_var.reset(saas_token)
        request_id_var.reset(request_token)


def clear_context():
    """Clear all context variables."""
    request_id_var.set(None)
    saas_name_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
