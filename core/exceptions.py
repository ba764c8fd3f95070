"""
Exceptions métier - gestion d'erreurs spécialisées

Hiérarchie commune aux services Huddle. Toutes les erreurs sont récupérables
par l'appelant; seule ``StorageUnavailableError`` signale une condition à
réessayer. Les routes HTTP utilisent ``http_status`` et ``to_dict``.
"""

from typing import Any, Dict, Optional


class HuddleError(Exception):
    """Exception de base pour les services Huddle"""

    error_code = "GENERAL_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Sérialise l'exception pour logging/API"""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(HuddleError):
    error_code = "NOT_FOUND"
    http_status = 404


class ExpiredError(HuddleError):
    error_code = "EXPIRED"
    http_status = 410


class QuotaExhaustedError(HuddleError):
    """Le code d'invitation n'a plus d'utilisation disponible."""

    error_code = "QUOTA_EXHAUSTED"
    http_status = 409


class AttemptsExceededError(HuddleError):
    """Le code OTP a atteint le nombre maximal de tentatives."""

    error_code = "ATTEMPTS_EXCEEDED"
    http_status = 429


class InvalidCodeError(HuddleError):
    """Code OTP incorrect; expose le nombre de tentatives restantes."""

    error_code = "INVALID_CODE"
    http_status = 400

    def __init__(self, message: str, remaining_attempts: int, **kwargs):
        super().__init__(message, **kwargs)
        self.remaining_attempts = remaining_attempts
        self.details["remaining_attempts"] = remaining_attempts


class AlreadyVerifiedError(HuddleError):
    error_code = "ALREADY_VERIFIED"
    http_status = 409


class UsernameExhaustedError(HuddleError):
    error_code = "USERNAME_EXHAUSTED"
    http_status = 409


class ValidationError(HuddleError):
    """Entrée mal formée (ensemble de participants vide, type inconnu...)."""

    error_code = "VALIDATION_ERROR"
    http_status = 400


class AccessDeniedError(HuddleError):
    error_code = "ACCESS_DENIED"
    http_status = 403


class RateLimitedError(HuddleError):
    """Trop de requêtes sur une route protégée dans la fenêtre courante."""

    error_code = "RATE_LIMITED"
    http_status = 429


class StorageUnavailableError(HuddleError):
    """Échec de la couche de stockage (connectivité, forme inattendue)."""

    error_code = "STORAGE_UNAVAILABLE"
    http_status = 503


__all__ = [
    "HuddleError",
    "NotFoundError",
    "ExpiredError",
    "QuotaExhaustedError",
    "AttemptsExceededError",
    "InvalidCodeError",
    "AlreadyVerifiedError",
    "UsernameExhaustedError",
    "ValidationError",
    "AccessDeniedError",
    "RateLimitedError",
    "StorageUnavailableError",
]
