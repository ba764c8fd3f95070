from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


# Profil public, partagé avec les autres services (participants, expéditeurs)
class PublicProfile(BaseModel):
    id: int
    name: str
    username: str
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Profil complet de l'utilisateur courant
class User(PublicProfile):
    email: str
    bio: Optional[str] = None
    is_email_verified: bool = False
    is_deleted: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# Mise à jour du profil
class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=512)


# Claims retenus du jeton du fournisseur d'identité
class IdentityClaims(BaseModel):
    subject: str
    email: str = ""
    name: str = ""
    picture: Optional[str] = None


class UsernameAvailability(BaseModel):
    username: str
    available: bool


class UsernameSuggestions(BaseModel):
    base: str
    suggestions: list[str]
