"""Common validation helpers used across services."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, TypeVar

from core.exceptions import ValidationError

T = TypeVar("T")


def non_empty_str(value: str, field: str = "value") -> str:
    """Ensure a string is not empty or whitespace and return it stripped."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} cannot be empty", details={"field": field})
    return str(value).strip()


def one_of(value: str, allowed: Iterable[str], field: str = "value") -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of {', '.join(allowed)}",
            details={"field": field, "value": value},
        )
    return value


def normalize_email(email: str) -> str:
    return non_empty_str(email, "email").lower()


def dedupe(values: Iterable[T]) -> List[T]:
    """Drop duplicates while keeping the first occurrence order."""
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """SQLite drops the tzinfo of stored timestamps; every value is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = [
    "non_empty_str",
    "one_of",
    "normalize_email",
    "dedupe",
    "utcnow",
    "ensure_aware",
]
