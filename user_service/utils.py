"""
Utilitaires partagés pour le service utilisateur.

Ce module contient des fonctions utilitaires réutilisables dans tout le service.
"""
import re
from urllib.parse import quote

from user_service.constants import (
    DEFAULT_AVATAR_BASE_URL,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PADDING,
)

_USERNAME_FORBIDDEN = re.compile(r"[^a-z0-9_]")


def normalize_username(hint: str) -> str:
    """
    Dérive un nom d'utilisateur valide à partir d'une suggestion libre.

    Args:
        hint: Suggestion brute (partie locale d'un email, pseudo saisi...)

    Returns:
        str: Nom en minuscules limité à [a-z0-9_], complété si trop court,
        tronqué à la longueur maximale

    Example:
        >>> normalize_username("Jo.")
        'jouser'
    """
    username = _USERNAME_FORBIDDEN.sub("", (hint or "").lower())
    if len(username) < USERNAME_MIN_LENGTH:
        username = username + USERNAME_PADDING
    return username[:USERNAME_MAX_LENGTH]


def with_suffix(base: str, suffix: int) -> str:
    """Ajoute un suffixe numérique sans dépasser la longueur maximale."""
    tail = str(suffix)
    return base[: USERNAME_MAX_LENGTH - len(tail)] + tail


def default_avatar_url(seed: str) -> str:
    """URL d'avatar déterministe pour une graine donnée."""
    return f"{DEFAULT_AVATAR_BASE_URL}?seed={quote(seed, safe='')}"


def username_hint_from_claims(subject: str, email: str = "") -> str:
    """Partie locale de l'email, sinon ``user_`` suivi du début du sujet."""
    local_part = (email or "").split("@")[0]
    if local_part:
        return local_part
    return f"user_{subject[:6]}"
