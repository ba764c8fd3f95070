"""One-time verification codes: hashed, single purpose, attempt bounded."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from config_service.config import settings
from core.decorators import storage_guard
from core.exceptions import (
    AlreadyVerifiedError,
    AttemptsExceededError,
    ExpiredError,
    InvalidCodeError,
    NotFoundError,
)
from core.validators import ensure_aware, normalize_email, one_of, utcnow
from db_service.models.access_token import MAX_OTP_ATTEMPTS, OTP_PURPOSES, OTPCode
from token_service.hashing import hash_code, verify_code

logger = logging.getLogger(__name__)

NUMERIC_LENGTH = 6
ALPHANUMERIC_LENGTH = 8
# Sans 0/O ni 1/I, ambigus à la lecture
ALPHANUMERIC_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_FORMATS = ("numeric", "alphanumeric")


def generate_numeric_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def generate_alphanumeric_code() -> str:
    return "".join(secrets.choice(ALPHANUMERIC_ALPHABET) for _ in range(ALPHANUMERIC_LENGTH))


class OTPVault:
    """Issue and verify OTPs.

    Attempt counting and the verified transition are single conditional
    ``UPDATE`` statements, so concurrent guesses can never push a record past
    ``MAX_OTP_ATTEMPTS`` nor verify it twice.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        code_format: Optional[str] = None,
    ) -> None:
        self._db = db
        self._clock = clock
        self._code_format = one_of(code_format or settings.OTP_CODE_FORMAT, CODE_FORMATS, "code_format")

    def _generate(self) -> str:
        if self._code_format == "alphanumeric":
            return generate_alphanumeric_code()
        return generate_numeric_code()

    def _latest(self, email: str, purpose: str) -> Optional[OTPCode]:
        return (
            self._db.query(OTPCode)
            .filter(OTPCode.email == email, OTPCode.purpose == purpose)
            .order_by(OTPCode.created_at.desc(), OTPCode.id.desc())
            .first()
        )

    @storage_guard
    def issue(
        self,
        email: str,
        purpose: str = "email_verification",
        ttl: Optional[timedelta] = None,
    ) -> str:
        """
        Crée un nouveau code pour ``(email, purpose)`` et retourne le clair.

        Les codes non vérifiés précédents pour la même paire sont supprimés.
        L'envoi du code reste à la charge de l'appelant.
        """
        email = normalize_email(email)
        one_of(purpose, OTP_PURPOSES, "purpose")
        ttl = ttl or timedelta(minutes=settings.OTP_TTL_MINUTES)

        self._db.execute(
            delete(OTPCode)
            .where(
                OTPCode.email == email,
                OTPCode.purpose == purpose,
                OTPCode.verified.is_(False),
            )
            .execution_options(synchronize_session=False)
        )

        code = self._generate()
        now = self._clock()
        record = OTPCode(
            email=email,
            code_hash=hash_code(code),
            purpose=purpose,
            attempts=0,
            expires_at=now + ttl,
            verified=False,
            created_at=now,
        )
        self._db.add(record)
        self._db.commit()
        logger.info(f"OTP issued for {email} ({purpose})")
        return code

    def _raise_terminal(self, record: OTPCode, now: datetime) -> None:
        if record.verified:
            raise AlreadyVerifiedError("Code already used", details={"purpose": record.purpose})
        if now >= ensure_aware(record.expires_at):
            raise ExpiredError("Verification code has expired. Please request a new one.")
        if record.attempts >= MAX_OTP_ATTEMPTS:
            raise AttemptsExceededError(
                "Too many failed attempts. Please request a new verification code.",
                details={"max_attempts": MAX_OTP_ATTEMPTS},
            )

    @storage_guard
    def verify(self, email: str, purpose: str, candidate: str) -> OTPCode:
        email = normalize_email(email)
        record = self._latest(email, purpose)
        if not record:
            raise NotFoundError("No verification code found", details={"purpose": purpose})

        now = self._clock()
        self._raise_terminal(record, now)

        if not verify_code((candidate or "").strip(), record.code_hash):
            result = self._db.execute(
                update(OTPCode)
                .where(
                    OTPCode.id == record.id,
                    OTPCode.attempts < MAX_OTP_ATTEMPTS,
                    OTPCode.verified.is_(False),
                )
                .values(attempts=OTPCode.attempts + 1)
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            self._db.refresh(record)
            if result.rowcount == 0:
                self._raise_terminal(record, now)
            remaining = max(MAX_OTP_ATTEMPTS - record.attempts, 0)
            raise InvalidCodeError("Invalid verification code", remaining_attempts=remaining)

        result = self._db.execute(
            update(OTPCode)
            .where(
                OTPCode.id == record.id,
                OTPCode.verified.is_(False),
                OTPCode.attempts < MAX_OTP_ATTEMPTS,
            )
            .values(verified=True)
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        self._db.refresh(record)
        if result.rowcount == 0:
            self._raise_terminal(record, now)

        if purpose == "email_verification":
            from user_service.services.users import mark_email_verified

            mark_email_verified(self._db, email)

        logger.info(f"OTP verified for {email} ({purpose})")
        return record

    def has_live_code(self, email: str, purpose: str = "email_verification") -> bool:
        record = self._latest(normalize_email(email), purpose)
        if not record or record.verified or record.attempts >= MAX_OTP_ATTEMPTS:
            return False
        return self._clock() < ensure_aware(record.expires_at)

    @storage_guard
    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        result = self._db.execute(
            delete(OTPCode)
            .where(OTPCode.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired OTP records")
        return result.rowcount
