"""
Point d'entrée principal pour l'application Huddle.

Ce module assemble tous les services de la plateforme :
- User Service: annuaire et résolution de l'identité
- Conversation Service: conversations, messages et réunions
- Token Service: codes d'invitation et codes OTP
- Notification Service: journal des notifications par utilisateur
"""

import logging
import uvicorn
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from config_service.config import settings
from core.exceptions import HuddleError
from core.logging import LOG_FORMAT, setup_logging
from db_service.health import check_database_health

# Configuration du logging
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger("huddle")

APP_VERSION = "1.0.0"

# ======== GESTION DU CYCLE DE VIE DE L'APPLICATION ========

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestionnaire du cycle de vie de l'application.
    Initialise les ressources au démarrage et les libère à l'arrêt.
    """
    setup_logging(
        settings.LOG_LEVEL,
        json_output=settings.LOG_JSON,
        log_file=settings.LOG_FILE if settings.LOG_TO_FILE else None,
    )
    logger.info("Application Huddle en démarrage...")

    from db_service.session import init_db
    init_db()

    yield  # L'application s'exécute ici

    logger.info("Application Huddle en arrêt...")


# ======== CRÉATION DE L'APPLICATION ========

def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Messagerie, réunions, invitations et vérification par code",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Configuration CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ======== ROUTEURS ========

    from user_service.api.endpoints.users import router as users_router
    from conversation_service.api.conversations import router as conversations_router
    from conversation_service.api.conversations import messages_router
    from conversation_service.api.meetings import router as meetings_router
    from notification_service.api.routes import router as notifications_router
    from token_service.api.routes import auth_router, invite_router

    prefix = settings.API_V1_STR
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["users"])
    app.include_router(conversations_router, prefix=f"{prefix}/conversations", tags=["conversations"])
    app.include_router(messages_router, prefix=f"{prefix}/messages", tags=["messages"])
    app.include_router(meetings_router, prefix=f"{prefix}/meetings", tags=["meetings"])
    app.include_router(notifications_router, prefix=f"{prefix}/notifications", tags=["notifications"])
    app.include_router(invite_router, prefix=f"{prefix}/invites", tags=["invites"])
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])

    # ======== ENDPOINTS DE BASE ========

    @app.get("/", tags=["health"])
    async def root():
        """Point d'entrée racine pour vérifier que l'application est en ligne."""
        return {
            "status": "ok",
            "application": f"{settings.PROJECT_NAME} API",
            "version": APP_VERSION,
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Vérification de l'état de santé, base de données comprise."""
        db_ok, db_message = check_database_health()
        return JSONResponse(
            status_code=200 if db_ok else 503,
            content={
                "status": "ok" if db_ok else "degraded",
                "services": {"main": "ok", "database": "ok" if db_ok else "unavailable"},
                "database": db_message,
                "version": APP_VERSION,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    # ======== GESTIONNAIRES D'EXCEPTIONS ========

    @app.exception_handler(HuddleError)
    async def huddle_exception_handler(request: Request, exc: HuddleError):
        """Erreurs métier : statut HTTP porté par l'exception, corps ``to_dict()``."""
        if exc.http_status >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Gestionnaire global d'exceptions pour toute l'application.
        Capture et formate les erreurs non gérées.
        """
        logger.error(f"Exception non gérée: {str(exc)}", exc_info=True)

        debug_mode = os.getenv("DEBUG", "False").lower() == "true"
        error_detail = str(exc) if debug_mode else "Contactez l'administrateur pour plus d'informations."

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Une erreur interne est survenue",
                "detail": error_detail
            }
        )

    return app


app = create_app()

# ======== LANCEMENT DE L'APPLICATION ========

if __name__ == "__main__":
    port = int(os.getenv("PORT", 3000))
    host = os.getenv("HOST", "0.0.0.0")
    debug = os.getenv("DEBUG", "False").lower() == "true"

    logger.info(f"Démarrage de l'application Huddle sur {host}:{port} (debug={debug}, env={settings.ENVIRONMENT})")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=debug,
        workers=1
    )
