from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
import secrets
import os
from pydantic import Field, field_validator
from urllib.parse import quote_plus
import logging

# Configurer un logger pour le module
logger = logging.getLogger(__name__)

class GlobalSettings(BaseSettings):
    """
    Configuration globale pour tous les services Huddle.
    Cette classe centralise toutes les variables d'environnement utilisées par les différents services.
    """
    # ==========================================
    # CONFIGURATION GÉNÉRALE DE L'APPLICATION
    # ==========================================
    PROJECT_NAME: str = "Huddle Platform"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = os.environ.get("SECRET_KEY", secrets.token_urlsafe(32))
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "production")
    CORS_ORIGINS: str = os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")

    # ==========================================
    # CONFIGURATION BASE DE DONNÉES
    # ==========================================
    POSTGRES_SERVER: str = os.environ.get("POSTGRES_SERVER", "localhost")
    POSTGRES_USER: str = os.environ.get("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.environ.get("POSTGRES_PASSWORD", "")
    POSTGRES_DB: str = os.environ.get("POSTGRES_DB", "huddle")
    POSTGRES_PORT: str = os.environ.get("POSTGRES_PORT", "5432")
    DATABASE_URL: Optional[str] = os.environ.get("DATABASE_URL", None)
    SQLALCHEMY_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    # ==========================================
    # CONFIGURATION FOURNISSEUR D'IDENTITÉ
    # ==========================================
    # Les jetons porteurs sont émis par le fournisseur d'identité externe,
    # on ne fait que vérifier la signature et lire le claim "sub".
    IDENTITY_TOKEN_SECRET: str = os.environ.get("IDENTITY_TOKEN_SECRET", "")
    IDENTITY_TOKEN_ALGORITHM: str = os.environ.get("IDENTITY_TOKEN_ALGORITHM", "HS256")
    IDENTITY_TOKEN_AUDIENCE: str = os.environ.get("IDENTITY_TOKEN_AUDIENCE", "")

    # ==========================================
    # CONFIGURATION INVITATIONS ET OTP
    # ==========================================
    INVITE_TTL_HOURS: int = int(os.environ.get("INVITE_TTL_HOURS", "24"))
    INVITE_DEFAULT_MAX_USES: int = int(os.environ.get("INVITE_DEFAULT_MAX_USES", "1"))
    OTP_TTL_MINUTES: int = int(os.environ.get("OTP_TTL_MINUTES", "10"))
    OTP_CODE_FORMAT: str = os.environ.get("OTP_CODE_FORMAT", "numeric")  # numeric | alphanumeric
    EXPOSE_OTP_IN_RESPONSE: bool = os.environ.get("EXPOSE_OTP_IN_RESPONSE", "False").lower() == "true"
    AUTH_RATE_LIMIT_MAX: int = int(os.environ.get("AUTH_RATE_LIMIT_MAX", "5"))
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = int(os.environ.get("AUTH_RATE_LIMIT_WINDOW_SECONDS", "900"))

    # ==========================================
    # CONFIGURATION MESSAGERIE ET NOTIFICATIONS
    # ==========================================
    CONVERSATION_LIST_LIMIT: int = int(os.environ.get("CONVERSATION_LIST_LIMIT", "50"))
    MESSAGE_PAGE_LIMIT: int = int(os.environ.get("MESSAGE_PAGE_LIMIT", "50"))
    NOTIFICATION_LIST_LIMIT: int = int(os.environ.get("NOTIFICATION_LIST_LIMIT", "50"))
    MEETING_REMINDER_MINUTES: int = int(os.environ.get("MEETING_REMINDER_MINUTES", "15"))

    # ==========================================
    # CONFIGURATION REDIS (broker Celery)
    # ==========================================
    REDIS_HOST: str = os.environ.get("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.environ.get("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.environ.get("REDIS_DB", "0"))

    # ==========================================
    # CONFIGURATION LOGGING
    # ==========================================
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.environ.get("LOG_FILE", "huddle.log")
    LOG_TO_FILE: bool = os.environ.get("LOG_TO_FILE", "False").lower() == "true"
    LOG_JSON: bool = os.environ.get("LOG_JSON", "False").lower() == "true"

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info):
        if v:
            return v
        # Utiliser directement DATABASE_URL (qui peut être DATABASE_URL dans Heroku)
        db_url = info.data.get("DATABASE_URL")
        if db_url:
            # Convertir postgres:// en postgresql:// si nécessaire
            if db_url.startswith("postgres://"):
                db_url = db_url.replace("postgres://", "postgresql://", 1)
            logger.debug("Utilisation de DATABASE_URL pour la connexion à la base de données")
            return db_url

        # Si pas de DATABASE_URL, utiliser les composants individuels
        data = info.data
        server = data.get("POSTGRES_SERVER", "")
        port = data.get("POSTGRES_PORT", "5432")
        user = quote_plus(data.get("POSTGRES_USER", ""))
        password = quote_plus(data.get("POSTGRES_PASSWORD", ""))
        db = data.get("POSTGRES_DB", "")

        if not server or server == "localhost":
            logger.debug("Configuration d'une connexion locale à la base de données")
        else:
            logger.debug(f"Configuration d'une connexion à la base de données sur {server}")

        return f"postgresql://{user}:{password}@{server}:{port}/{db}"

    @property
    def identity_secret(self) -> str:
        """Clé de vérification des jetons d'identité (repli sur SECRET_KEY)."""
        return self.IDENTITY_TOKEN_SECRET or self.SECRET_KEY

    def get_cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def get_celery_urls(self) -> dict:
        """URLs broker / backend Celery dérivées de la configuration Redis."""
        return {
            "broker_url": f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}",
            "result_backend": f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB + 1}",
        }

    def validate_configuration(self) -> dict:
        """Valide la configuration et retourne les erreurs"""
        errors = []
        warnings = []

        # Validation des jetons
        if self.INVITE_TTL_HOURS <= 0:
            errors.append("INVITE_TTL_HOURS doit être strictement positif")

        if self.INVITE_DEFAULT_MAX_USES < 1:
            errors.append("INVITE_DEFAULT_MAX_USES doit être >= 1")

        if self.OTP_TTL_MINUTES <= 0:
            errors.append("OTP_TTL_MINUTES doit être strictement positif")

        if self.OTP_CODE_FORMAT not in ("numeric", "alphanumeric"):
            errors.append("OTP_CODE_FORMAT doit valoir 'numeric' ou 'alphanumeric'")

        if self.AUTH_RATE_LIMIT_MAX < 1 or self.AUTH_RATE_LIMIT_WINDOW_SECONDS < 1:
            errors.append("AUTH_RATE_LIMIT_MAX et AUTH_RATE_LIMIT_WINDOW_SECONDS doivent être >= 1")

        if self.OTP_TTL_MINUTES > 60:
            warnings.append("OTP_TTL_MINUTES > 60 allonge la fenêtre d'attaque des codes")

        # Validation pagination
        for name in ("CONVERSATION_LIST_LIMIT", "MESSAGE_PAGE_LIMIT", "NOTIFICATION_LIST_LIMIT"):
            if getattr(self, name) < 1:
                errors.append(f"{name} doit être >= 1")

        # Validation sécurité
        if self.EXPOSE_OTP_IN_RESPONSE and self.ENVIRONMENT == "production":
            errors.append("EXPOSE_OTP_IN_RESPONSE ne doit jamais être activé en production")

        if not self.IDENTITY_TOKEN_SECRET:
            warnings.append("IDENTITY_TOKEN_SECRET absent, SECRET_KEY utilisée pour vérifier les jetons")

        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings
        }

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )


# Initialisation du singleton de configuration globale
settings = GlobalSettings()

# Validation automatique de la configuration générale
config_validation = settings.validate_configuration()
if not config_validation["valid"]:
    logger.error(f"Configuration générale invalide: {config_validation['errors']}")
if config_validation["warnings"]:
    logger.warning(f"Avertissements configuration générale: {config_validation['warnings']}")

# Log informations importantes
logger.info(f"Configuration Huddle Platform chargée - Mode: {settings.ENVIRONMENT}")
logger.info(f"Database: {'✅ URL Configurée' if settings.DATABASE_URL else '❌ URL Manquante'}")
logger.info(f"Identity provider: {'✅ Configuré' if settings.IDENTITY_TOKEN_SECRET else '❌ Repli SECRET_KEY'}")
