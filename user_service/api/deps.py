# user_service/api/deps.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from db_service.models.user import User
from db_service.session import get_db
from user_service.core.security import IdentityTokenError, decode_identity_token
from user_service.schemas.user import IdentityClaims
from user_service.services import users
from user_service.utils import username_hint_from_claims

bearer_scheme = HTTPBearer(auto_error=False)


async def get_identity_claims(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> IdentityClaims:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_identity_token(credentials.credentials)
    except IdentityTokenError:
        raise credentials_exception

    return IdentityClaims(
        subject=str(payload["sub"]),
        email=payload.get("email") or "",
        name=payload.get("name") or "",
        picture=payload.get("picture"),
    )


async def get_current_user(
    db: Session = Depends(get_db),
    claims: IdentityClaims = Depends(get_identity_claims),
) -> User:
    """Résout (ou crée à la volée) l'utilisateur interne du sujet vérifié."""
    email = claims.email or f"{claims.subject}@placeholder.email"
    return users.resolve_or_create(
        db,
        subject=claims.subject,
        email=email,
        name=claims.name or "User",
        username_hint=username_hint_from_claims(claims.subject, claims.email),
        avatar=claims.picture,
    )


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.is_deleted:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deleted")
    return current_user
