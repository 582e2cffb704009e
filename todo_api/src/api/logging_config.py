from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

# Set by RequestLoggingMiddleware for the duration of one request
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """
    Install a stdout handler on the 'src.api' logger tree. Safe to call more than once;
    the handler is only added the first time.
    """
    root = logging.getLogger("src.api")
    root.setLevel(level)
    if any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
