"""
Limitation de débit des routes de vérification.

Fenêtre fixe en mémoire, une par utilisateur authentifié et par portée :
les routes d'une même portée partagent le compteur, ce qui empêche
d'alterner renvoi et vérification pour multiplier les essais.
"""
import logging
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends

from config_service.config import settings
from core.exceptions import RateLimitedError
from db_service.models.user import User
from user_service.api.deps import get_current_active_user

logger = logging.getLogger(__name__)


class RateLimiter:
    """Dépendance FastAPI : au plus ``max_requests`` appels par fenêtre et par appelant."""

    def __init__(
        self,
        scope: str,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = Lock()

    def hit(self, key: str) -> int:
        """Compte un appel pour ``key`` et retourne le nombre d'appels restants."""
        now = self._clock()
        with self._lock:
            if len(self._windows) > 1000:
                self._windows = {k: v for k, v in self._windows.items() if v[0] > now}

            reset_at, count = self._windows.get(key, (0.0, 0))
            if reset_at <= now:
                reset_at, count = now + self.window_seconds, 0
            count += 1
            self._windows[key] = (reset_at, count)

        if count > self.max_requests:
            retry_after = max(int(reset_at - now), 1)
            logger.warning(f"Rate limit exceeded for {key}: {count}/{self.max_requests}")
            raise RateLimitedError(
                "Too many authentication attempts. Please try again later.",
                details={"limit": self.max_requests, "retry_after": retry_after},
            )
        return self.max_requests - count

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    async def __call__(self, current_user: User = Depends(get_current_active_user)) -> None:
        self.hit(f"{self.scope}:{current_user.id}")


auth_rate_limit = RateLimiter(
    "auth",
    max_requests=settings.AUTH_RATE_LIMIT_MAX,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)
