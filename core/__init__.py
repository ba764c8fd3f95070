"""Core utilities shared across the project."""

from .logging import setup_logging, JsonFormatter
from .decorators import storage_guard
from .validators import non_empty_str, one_of, normalize_email, dedupe, utcnow, ensure_aware

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "storage_guard",
    "non_empty_str",
    "one_of",
    "normalize_email",
    "dedupe",
    "utcnow",
    "ensure_aware",
]
