"""Request ID logging context for tracing one operation across modules.

Every public booking and availability operation runs inside a request
scope. Records logged anywhere below it (slot generation, the commit-time
availability check, the store write) carry the same ``request_id``, so one
booking attempt can be followed through the log.

Usage:
    from slotbook.logging_context import get_request_logger, request_scope

    logger = get_request_logger(__name__)
    with request_scope("REQ-abc123"):
        lifecycle.create(...)  # every record has request_id == "REQ-abc123"

Without an explicit scope, each operation gets a fresh uuid4 hex id.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Callable, Iterator, Optional, TypeVar

NO_REQUEST_ID = "NO_REQUEST_ID"

LOG_FORMAT = "%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)

F = TypeVar("F", bound=Callable)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block.

    An explicit ``request_id`` always wins. Otherwise an enclosing scope's
    id is reused, and only the outermost scope generates a new one.
    """
    current = _request_id.get()
    if request_id is None and current != NO_REQUEST_ID:
        yield current
        return
    token = _request_id.set(request_id or uuid.uuid4().hex)
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


def with_request_id(func: F) -> F:
    """Run a service method inside a request scope."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        with request_scope():
            return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def request_id_handler(level: int = logging.NOTSET) -> logging.Handler:
    """Stream handler that stamps and prints the correlation ID."""
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter stamps records at the source logger, so handlers that do
    not carry the filter themselves (e.g. pytest's caplog) still see
    ``record.request_id``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
