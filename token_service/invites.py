"""Invite codes: issue, preview, redeem within quota, expire."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config_service.config import settings
from core.decorators import storage_guard
from core.exceptions import (
    ExpiredError,
    HuddleError,
    NotFoundError,
    QuotaExhaustedError,
    StorageUnavailableError,
    ValidationError,
)
from core.validators import ensure_aware, utcnow
from db_service.models.access_token import InviteCode
from db_service.models.conversation import Conversation

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


def _normalize_code(code: str) -> str:
    return (code or "").strip().lower()


class InviteVault:
    """Creator-issued codes redeemable up to ``max_uses`` times before expiry.

    The quota is enforced by a single conditional ``UPDATE``; the Python-side
    checks that precede it only pick which error to report.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock

    def _get(self, code: str) -> Optional[InviteCode]:
        normalized = _normalize_code(code)
        if not normalized:
            return None
        return self._db.query(InviteCode).filter(InviteCode.code == normalized).first()

    def _code_exists(self, code: str) -> bool:
        return self._db.query(InviteCode.id).filter(InviteCode.code == code).first() is not None

    @storage_guard
    def issue(
        self,
        creator_id: int,
        max_uses: Optional[int] = None,
        ttl: Optional[timedelta] = None,
    ) -> InviteCode:
        max_uses = settings.INVITE_DEFAULT_MAX_USES if max_uses is None else max_uses
        ttl = ttl or timedelta(hours=settings.INVITE_TTL_HOURS)
        if max_uses < 1:
            raise ValidationError("max_uses must be at least 1", details={"max_uses": max_uses})

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = secrets.token_hex(4)
            if self._code_exists(code):
                continue
            now = self._clock()
            invite = InviteCode(
                creator_id=creator_id,
                code=code,
                max_uses=max_uses,
                uses=0,
                expires_at=now + ttl,
                created_at=now,
            )
            self._db.add(invite)
            try:
                self._db.commit()
            except IntegrityError:
                # Collision concurrente sur le code unique
                self._db.rollback()
                logger.warning(f"Invite code collision on attempt {attempt}, retrying")
                continue
            self._db.refresh(invite)
            logger.info(f"Invite {invite.id} issued by user {creator_id} (max_uses={max_uses})")
            return invite

        raise StorageUnavailableError(
            "Could not allocate a unique invite code",
            details={"attempts": MAX_CODE_ATTEMPTS},
        )

    def preview(self, code: str) -> InviteCode:
        """Live invite for ``code``; missing and expired are indistinguishable."""
        invite = self._get(code)
        if not invite or self._clock() >= ensure_aware(invite.expires_at):
            raise NotFoundError("Invite not found or expired")
        return invite

    def _raise_unusable(self, invite: InviteCode, now: datetime) -> None:
        if now >= ensure_aware(invite.expires_at):
            raise ExpiredError("Invite has expired", details={"invite_id": invite.id})
        if invite.uses >= invite.max_uses:
            raise QuotaExhaustedError(
                "Invite has no uses left",
                details={"invite_id": invite.id, "max_uses": invite.max_uses},
            )

    @storage_guard
    def redeem(self, code: str) -> InviteCode:
        invite = self._get(code)
        if not invite:
            raise NotFoundError("Invite not found")

        now = self._clock()
        self._raise_unusable(invite, now)

        result = self._db.execute(
            update(InviteCode)
            .where(
                InviteCode.id == invite.id,
                InviteCode.uses < InviteCode.max_uses,
                InviteCode.expires_at > now,
            )
            .values(uses=InviteCode.uses + 1)
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        self._db.refresh(invite)

        if result.rowcount == 0:
            # Un autre appel a consommé la dernière utilisation entre-temps
            self._raise_unusable(invite, now)
            raise QuotaExhaustedError("Invite has no uses left", details={"invite_id": invite.id})

        logger.info(f"Invite {invite.id} redeemed ({invite.uses}/{invite.max_uses})")
        return invite

    def accept(self, code: str, acceptor_id: int) -> Tuple[InviteCode, Conversation]:
        """
        Redeem ``code`` for ``acceptor_id`` and connect them with the creator.

        Opens (or reuses) the direct conversation between both users and
        appends a ``match`` notification for the creator.
        """
        from conversation_service.service import ConversationStore
        from notification_service.repository import NotificationLedger

        invite = self._get(code)
        if not invite:
            raise NotFoundError("Invite not found")
        if invite.creator_id == acceptor_id:
            raise ValidationError("You cannot accept your own invite")

        invite = self.redeem(code)
        conversation = ConversationStore(self._db, clock=self._clock).get_or_create_direct(
            acceptor_id, invite.creator_id
        )

        try:
            NotificationLedger(self._db).append(
                invite.creator_id,
                "match",
                "New Connection",
                "Someone accepted your invite and joined your conversations.",
                related_id=str(conversation.id),
            )
        except HuddleError as e:
            logger.error(f"Match notification for invite {invite.id} failed: {e}")

        return invite, conversation

    @storage_guard
    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        result = self._db.execute(
            delete(InviteCode)
            .where(InviteCode.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired invite codes")
        return result.rowcount
