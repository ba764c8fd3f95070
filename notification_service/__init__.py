"""Per-user notification ledger."""

from .repository import NotificationLedger

__all__ = ["NotificationLedger"]
