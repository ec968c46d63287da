"""Structured logging configuration for sitedeploy."""

import logging
import sys
import uuid
from typing import Any, Dict, Optional, TextIO

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars, reset_contextvars

CONTEXT_KEYS = ("request_id", "branch", "dry_run")


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structured logging.

    Log lines go to stderr by default so that command output on stdout
    stays machine-readable.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of the console format
        stream: Destination stream, stderr when omitted
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            _add_publish_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=stream or sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _add_publish_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Copy the bound publish context into the event."""
    context = get_contextvars()
    for key in CONTEXT_KEYS:
        if key in context:
            event_dict.setdefault(key, context[key])
    return event_dict


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def generate_request_id() -> str:
    return uuid.uuid4().hex


class RequestContext:
    """Bind a request ID, and optionally the branch and dry-run flag, for one publish."""

    def __init__(self, request_id: Optional[str] = None, **fields: Any):
        self.request_id = request_id or generate_request_id()
        self.fields = {k: v for k, v in fields.items() if k in CONTEXT_KEYS and v is not None}
        self.tokens = None

    def __enter__(self) -> str:
        self.tokens = bind_contextvars(request_id=self.request_id, **self.fields)
        return self.request_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.tokens:
            reset_contextvars(**self.tokens)
