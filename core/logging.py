"""Structured logging helpers used across services."""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"


class JsonFormatter(logging.Formatter):
    """Formatter that outputs logs as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - trivial
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            log_record.update(extra)
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    *,
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Plain text output uses the platform format; ``json_output`` switches the
    console handler to :class:`JsonFormatter`. ``log_file`` adds a file
    handler with the same formatter.
    """

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter: logging.Formatter = JsonFormatter() if json_output else logging.Formatter(LOG_FORMAT)
    if not root.handlers:
        root.addHandler(logging.StreamHandler(sys.stdout))
    for handler in root.handlers:
        handler.setFormatter(formatter)

    if log_file and not any(
        isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", "").endswith(log_file)
        for h in root.handlers
    ):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Réglage du niveau de log pour les modules tiers trop verbeux
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


__all__ = ["setup_logging", "JsonFormatter", "LOG_FORMAT"]
