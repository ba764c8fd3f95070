from datetime import timedelta
from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from config_service.config import settings
from core.exceptions import AccessDeniedError, ExpiredError, NotFoundError
from db_service.models.user import User
from db_service.session import get_db
from token_service.invites import InviteVault
from token_service.api.rate_limit import auth_rate_limit
from token_service.otp import OTPVault
from token_service.schemas import (
    InviteAccepted, InviteGenerate, InvitePreview, InviteRead,
    OTPRequest, OTPSent, OTPVerified, OTPVerifyRequest,
)
from user_service.api.deps import get_current_active_user
from user_service.constants import PLACEHOLDER_NAME, PLACEHOLDER_USERNAME
from user_service.schemas.user import PublicProfile
from user_service.services import users

logger = logging.getLogger(__name__)

invite_router = APIRouter()
auth_router = APIRouter()

INVITE_UNAVAILABLE = "Invite not found or expired"


def _creator_profile(db: Session, creator_id: int) -> PublicProfile:
    creator = users.get_user_by_id(db, creator_id)
    if not creator or creator.is_deleted:
        return PublicProfile(id=creator_id, name=PLACEHOLDER_NAME, username=PLACEHOLDER_USERNAME)
    return PublicProfile.model_validate(creator)


# ===== Invitations =====

@invite_router.post("/generate", response_model=InviteRead)
async def generate_invite(
    invite_in: Optional[InviteGenerate] = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Générer un code d'invitation pour l'utilisateur courant.

    Returns:
        InviteRead: Code, quota et date d'expiration
    """
    invite_in = invite_in or InviteGenerate()
    ttl = timedelta(hours=invite_in.ttl_hours) if invite_in.ttl_hours else None
    return InviteVault(db).issue(current_user.id, max_uses=invite_in.max_uses, ttl=ttl)


@invite_router.get("/{code}", response_model=InvitePreview)
async def preview_invite(code: str, db: Session = Depends(get_db)) -> Any:
    """Aperçu public d'une invitation valide (créateur, expiration)."""
    invite = InviteVault(db).preview(code)
    return InvitePreview(creator=_creator_profile(db, invite.creator_id), expires_at=invite.expires_at)


@invite_router.post("/{code}/accept", response_model=InviteAccepted)
async def accept_invite(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Accepter une invitation et ouvrir la conversation avec son créateur.

    Raises:
        HuddleError 404: Invitation inconnue ou expirée (indistinguables)
        HuddleError 409: Quota d'utilisations atteint
        HuddleError 400: Invitation émise par l'appelant lui-même
    """
    try:
        _, conversation = InviteVault(db).accept(code, current_user.id)
    except (NotFoundError, ExpiredError):
        raise NotFoundError(INVITE_UNAVAILABLE)
    return InviteAccepted(conversation_id=conversation.id)


# ===== Vérification par OTP =====

def _caller_email(current_user: User, email: Optional[str]) -> str:
    requested = (email or current_user.email or "").strip().lower()
    if requested != (current_user.email or "").lower():
        raise AccessDeniedError("Email does not match authenticated user")
    return requested


def _sent(message: str, code: str) -> OTPSent:
    if settings.EXPOSE_OTP_IN_RESPONSE and settings.ENVIRONMENT != "production":
        return OTPSent(message=message, otp=code)
    return OTPSent(message=message)


@auth_router.post(
    "/send-otp",
    response_model=OTPSent,
    response_model_exclude_none=True,
    dependencies=[Depends(auth_rate_limit)],
)
async def send_otp(
    request: Optional[OTPRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    email = _caller_email(current_user, request.email if request else None)
    code = OTPVault(db).issue(email, "email_verification")
    # TODO: brancher un fournisseur d'envoi d'emails; le code n'est transmis qu'en développement
    return _sent("Verification code sent to your email", code)


@auth_router.post("/verify-otp", response_model=OTPVerified, dependencies=[Depends(auth_rate_limit)])
async def verify_otp(
    request: OTPVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Vérifier le code reçu par email.

    Raises:
        HuddleError 400: Code incorrect (avec ``remaining_attempts``)
        HuddleError 404: Aucun code émis
        HuddleError 409: Code déjà utilisé
        HuddleError 410: Code expiré
        HuddleError 429: Trop de tentatives sur le code, ou trop d'appels sur /auth
    """
    email = _caller_email(current_user, request.email)
    OTPVault(db).verify(email, "email_verification", request.otp)
    return OTPVerified()


@auth_router.post(
    "/resend-otp",
    response_model=OTPSent,
    response_model_exclude_none=True,
    dependencies=[Depends(auth_rate_limit)],
)
async def resend_otp(
    request: Optional[OTPRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    email = _caller_email(current_user, request.email if request else None)
    code = OTPVault(db).issue(email, "email_verification")
    return _sent("New verification code sent to your email", code)
