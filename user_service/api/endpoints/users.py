from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Any, List
import logging

from db_service.models.user import User as UserModel
from user_service.schemas.user import (
    User, PublicProfile, UserUpdate,
    UsernameAvailability, UsernameSuggestions
)
from user_service.api.deps import get_db, get_current_active_user
from user_service.constants import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from user_service.services import users

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/me", response_model=User)
async def read_user_me(
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    """
    Profil de l'utilisateur courant.

    L'utilisateur est résolu (et créé au premier appel) à partir du sujet
    vérifié du jeton d'identité.
    """
    return current_user


@router.put("/me", response_model=User)
async def update_user_me(
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    """
    Mettre à jour le profil de l'utilisateur courant.

    Args:
        user_in: Champs modifiables (nom, nom d'utilisateur, bio, avatar)

    Returns:
        User: Profil mis à jour

    Raises:
        HuddleError 400: Nom d'utilisateur déjà pris
    """
    return users.update_profile(db, current_user.id, user_in.model_dump(exclude_unset=True))


@router.delete("/me", response_model=User)
async def delete_user_me(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    """Suppression logique du compte courant."""
    return users.soft_delete_user(db, current_user.id)


@router.get("/search", response_model=List[PublicProfile])
async def search_users(
    q: str = Query("", max_length=64),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=SEARCH_MAX_LIMIT),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    return users.search_users(db, q, limit=limit)


@router.get("/check-username/{username}", response_model=UsernameAvailability)
async def check_username(
    username: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    return UsernameAvailability(username=username, available=not users.is_username_taken(db, username))


@router.get("/suggestions/{base}", response_model=UsernameSuggestions)
async def username_suggestions(
    base: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    return UsernameSuggestions(base=base, suggestions=users.generate_username_suggestions(db, base))


@router.get("/{user_id}", response_model=PublicProfile)
async def read_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_active_user),
) -> Any:
    """
    Profil public d'un utilisateur.

    Raises:
        HTTPException 404: Utilisateur inconnu ou supprimé
    """
    user = users.get_user_by_id(db, user_id)
    if not user or user.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
