"""
Constantes partagées pour le service utilisateur.

Ce module contient les constantes configurables utilisées dans le service.
"""
import os

# Contraintes des noms d'utilisateur
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PADDING = "user"

# Génération de suffixes : d'abord 1..5, puis des tirages aléatoires 0..999
USERNAME_SEQUENTIAL_SUFFIXES = 5
USERNAME_RANDOM_ATTEMPTS = 10
USERNAME_RANDOM_SUFFIX_MAX = 999

# Recherche
SEARCH_DEFAULT_LIMIT = int(os.getenv("USER_SEARCH_DEFAULT_LIMIT", "10"))
SEARCH_MAX_LIMIT = int(os.getenv("USER_SEARCH_MAX_LIMIT", "50"))

# Avatars par défaut
DEFAULT_AVATAR_BASE_URL = os.getenv(
    "DEFAULT_AVATAR_BASE_URL", "https://api.dicebear.com/9.x/adventurer/svg"
)

# Identité de repli pour les utilisateurs absents ou supprimés
PLACEHOLDER_NAME = "Unknown"
PLACEHOLDER_USERNAME = "unknown"
