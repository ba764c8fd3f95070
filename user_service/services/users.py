from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.decorators import storage_guard
from core.exceptions import NotFoundError, UsernameExhaustedError, ValidationError
from core.validators import normalize_email, utcnow
from db_service.models.user import User
from user_service.constants import (
    SEARCH_DEFAULT_LIMIT,
    SEARCH_MAX_LIMIT,
    USERNAME_RANDOM_ATTEMPTS,
    USERNAME_RANDOM_SUFFIX_MAX,
    USERNAME_SEQUENTIAL_SUFFIXES,
)
from user_service.utils import default_avatar_url, normalize_username, with_suffix

logger = logging.getLogger(__name__)

_rng = random.Random()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_subject(db: Session, subject: str) -> User | None:
    return db.query(User).filter(User.external_subject == subject).first()


def get_users_by_ids(db: Session, user_ids: List[int]) -> Dict[int, User]:
    if not user_ids:
        return {}
    users = db.query(User).filter(User.id.in_(set(user_ids))).all()
    return {user.id: user for user in users}


def is_username_taken(db: Session, username: str) -> bool:
    # Les comptes supprimés logiquement conservent leur nom
    return (
        db.query(User.id)
        .filter(func.lower(User.username) == (username or "").lower())
        .first()
        is not None
    )


def _candidate_suffixes():
    for i in range(1, USERNAME_SEQUENTIAL_SUFFIXES + 1):
        yield i
    for _ in range(USERNAME_RANDOM_ATTEMPTS):
        yield _rng.randint(0, USERNAME_RANDOM_SUFFIX_MAX)


def generate_username_suggestions(db: Session, base_username: str, count: int = 3) -> List[str]:
    """Propose jusqu'à ``count`` noms libres dérivés de ``base_username``."""
    base = normalize_username(base_username)
    suggestions: List[str] = []
    for suffix in _candidate_suffixes():
        candidate = with_suffix(base, suffix)
        if candidate in suggestions:
            continue
        if not is_username_taken(db, candidate):
            suggestions.append(candidate)
        if len(suggestions) >= count:
            break
    return suggestions


def suggest_username(db: Session, base_username: str) -> str:
    suggestions = generate_username_suggestions(db, base_username, count=1)
    if not suggestions:
        raise UsernameExhaustedError(
            f"No free username derived from '{base_username}'",
            details={"base": normalize_username(base_username)},
        )
    return suggestions[0]


def _allocate_username(db: Session, hint: str) -> str:
    base = normalize_username(hint)
    if not is_username_taken(db, base):
        return base
    return suggest_username(db, base)


@storage_guard
def resolve_or_create(
    db: Session,
    subject: str,
    email: str,
    name: str,
    username_hint: str,
    avatar: Optional[str] = None,
) -> User:
    """
    Résout l'utilisateur associé au sujet du fournisseur d'identité, ou le crée.

    Pour un compte existant : email, nom et date de connexion sont rafraîchis,
    l'avatar n'est remplacé que s'il est fourni. Le nom d'utilisateur n'est
    jamais modifié ici.

    Raises:
        ValidationError: sujet vide
        UsernameExhaustedError: aucun nom libre trouvé après toutes les tentatives
    """
    if not subject or not subject.strip():
        raise ValidationError("Identity subject is required", details={"field": "subject"})

    email = normalize_email(email)
    avatar = avatar.strip() if avatar and avatar.strip() else None
    user = get_user_by_subject(db, subject)

    if user:
        logger.debug(f"User exists for subject, refreshing: {user.id}")
        user.email = email
        user.name = name or user.name
        if avatar:
            user.avatar = avatar
        elif not user.avatar or not user.avatar.strip():
            user.avatar = default_avatar_url(user.username or subject)
        user.last_login = utcnow()
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    username = _allocate_username(db, username_hint)
    user = User(
        external_subject=subject,
        email=email,
        name=name or username,
        username=username,
        avatar=avatar or default_avatar_url(username or subject),
        last_login=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created with username {user.username}")
    return user


def search_users(db: Session, query: str, limit: int = SEARCH_DEFAULT_LIMIT) -> List[User]:
    """Recherche insensible à la casse sur le nom d'utilisateur, hors comptes supprimés."""
    fragment = (query or "").strip().lower()
    if not fragment:
        return []
    limit = max(1, min(limit, SEARCH_MAX_LIMIT))
    return (
        db.query(User)
        .filter(
            func.lower(User.username).contains(fragment, autoescape=True),
            User.is_deleted.is_(False),
        )
        .order_by(User.username)
        .limit(limit)
        .all()
    )


def _require_user(db: Session, user_id: int) -> User:
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


@storage_guard
def update_profile(db: Session, user_id: int, data: Dict[str, Any]) -> User:
    user = _require_user(db, user_id)

    if data.get("username") is not None:
        username = normalize_username(data.pop("username"))
        if username != user.username:
            if is_username_taken(db, username):
                raise ValidationError("Username already taken", details={"username": username})
            user.username = username
    else:
        data.pop("username", None)

    for field in ("name", "bio", "avatar"):
        if field in data and data[field] is not None:
            setattr(user, field, data[field])

    if not user.avatar:
        user.avatar = default_avatar_url(user.username)

    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@storage_guard
def soft_delete_user(db: Session, user_id: int) -> User:
    user = _require_user(db, user_id)
    user.is_deleted = True
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} soft-deleted")
    return user


@storage_guard
def mark_email_verified(db: Session, email: str) -> int:
    updated = (
        db.query(User)
        .filter(User.email == normalize_email(email))
        .update({User.is_email_verified: True}, synchronize_session=False)
    )
    db.commit()
    return updated
