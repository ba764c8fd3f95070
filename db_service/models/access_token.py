# db_service/models/access_token.py
"""
Jetons d'accès à durée de vie courte : codes d'invitation et codes OTP.

Les bornes d'utilisation sont portées à la fois par des contraintes CHECK et
par les mises à jour conditionnelles du service ``token_service``.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)

from core.validators import utcnow
from db_service.base import Base


OTP_PURPOSES = ("email_verification", "password_reset", "login")
MAX_OTP_ATTEMPTS = 5


class InviteCode(Base):
    __tablename__ = "invite_codes"
    __table_args__ = (
        CheckConstraint("max_uses >= 1", name="ck_invite_max_uses_positive"),
        CheckConstraint("uses >= 0 AND uses <= max_uses", name="ck_invite_uses_bounded"),
    )

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    code = Column(String(32), unique=True, index=True, nullable=False)
    max_uses = Column(Integer, default=1, nullable=False)
    uses = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<InviteCode(id={self.id}, uses={self.uses}/{self.max_uses})>"


class OTPCode(Base):
    __tablename__ = "otp_codes"
    __table_args__ = (
        CheckConstraint(
            f"attempts >= 0 AND attempts <= {MAX_OTP_ATTEMPTS}",
            name="ck_otp_attempts_bounded",
        ),
        Index("ix_otp_email_purpose_created", "email", "purpose", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), nullable=False, index=True)
    # Hash uniquement, jamais exposé par les schémas de lecture
    code_hash = Column(String(255), nullable=False)
    purpose = Column(String(32), default="email_verification", nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<OTPCode(id={self.id}, purpose={self.purpose}, attempts={self.attempts})>"
