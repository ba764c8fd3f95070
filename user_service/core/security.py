from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from jose import jwt, JWTError

from config_service.config import settings

logger = logging.getLogger(__name__)


class IdentityTokenError(Exception):
    """Jeton d'identité absent, mal signé, expiré ou sans sujet."""


def decode_identity_token(token: str) -> Dict[str, Any]:
    """
    Vérifie un jeton porteur émis par le fournisseur d'identité.

    Returns:
        dict: Claims du jeton, avec au minimum ``sub``

    Raises:
        IdentityTokenError: signature invalide, jeton expiré ou sujet manquant
    """
    options = {"verify_aud": bool(settings.IDENTITY_TOKEN_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.identity_secret,
            algorithms=[settings.IDENTITY_TOKEN_ALGORITHM],
            audience=settings.IDENTITY_TOKEN_AUDIENCE or None,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Identity token rejected: {e}")
        raise IdentityTokenError(str(e)) from e

    if not payload.get("sub"):
        raise IdentityTokenError("Token has no subject")
    return payload


def create_identity_token(
    subject: str,
    claims: Optional[Dict[str, Any]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Émet un jeton au format attendu (outillage de développement et tests)."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode: Dict[str, Any] = {"exp": expire, "sub": str(subject)}
    if settings.IDENTITY_TOKEN_AUDIENCE:
        to_encode["aud"] = settings.IDENTITY_TOKEN_AUDIENCE
    to_encode.update(claims or {})
    return jwt.encode(to_encode, settings.identity_secret, algorithm=settings.IDENTITY_TOKEN_ALGORITHM)
