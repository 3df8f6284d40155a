from __future__ import annotations

import logging
import re
import sys
from contextvars import ContextVar
from typing import Optional


# Context variables for enriched logging
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
school_code_var: ContextVar[Optional[str]] = ContextVar("school_code", default=None)

_SCHOOL_PATH = re.compile(r"^/api/v1/schools/([^/]+)(?:/|$)")


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and school_code from contextvars
    into each log record so formatters can include them.

    If no values are present in the context, placeholders are used.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        cid = correlation_id_var.get()
        code = school_code_var.get()
        setattr(record, "correlation_id", cid or "-")
        setattr(record, "school_code", code or "-")
        return True


# PUBLIC_INTERFACE
def school_code_from_path(path: str) -> Optional[str]:
    """Return the lowercased school code embedded in a portal/website URL path, if any."""
    match = _SCHOOL_PATH.match(path or "")
    if not match:
        return None
    return match.group(1).strip().lower() or None


# PUBLIC_INTERFACE
def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with a structured format and context filter."""
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | school=%(school_code)s | "
        "%(message)s"
    )
    formatter = logging.Formatter(fmt=fmt)
    handler.setFormatter(formatter)
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    # Remove pre-existing default handlers configured elsewhere (e.g., basicConfig)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
