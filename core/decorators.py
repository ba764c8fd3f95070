"""Common decorators for storage-facing functions."""
from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import StorageUnavailableError, ValidationError

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


def _session_from(args: tuple, kwargs: dict) -> Optional[Session]:
    if "db" in kwargs and isinstance(kwargs["db"], Session):
        return kwargs["db"]
    if not args:
        return None
    holder = args[0]
    if isinstance(holder, Session):
        return holder
    return getattr(holder, "_db", None)


def storage_guard(func: F) -> F:
    """Translate SQLAlchemy failures into domain errors.

    Works on repository methods (session stored as ``self._db``) and on
    service functions taking the session as first argument. The session is
    rolled back before the domain error is raised, so no half-applied unit of
    work stays attached to it.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as exc:
            db = _session_from(args, kwargs)
            if db is not None:
                db.rollback()
            logger.warning(f"Integrity error in {func.__qualname__}: {exc.orig}")
            raise ValidationError(
                "Conflicting record already exists",
                details={"operation": func.__qualname__},
            ) from exc
        except SQLAlchemyError as exc:
            db = _session_from(args, kwargs)
            if db is not None:
                db.rollback()
            logger.error(f"Storage failure in {func.__qualname__}: {exc}", exc_info=True)
            raise StorageUnavailableError(
                "Storage backend unavailable",
                details={"operation": func.__qualname__},
            ) from exc

    return wrapper  # type: ignore[return-value]


__all__ = ["storage_guard"]
