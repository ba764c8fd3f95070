"""
Module de healthcheck pour la base de données.

Fournit des fonctions pour vérifier la santé de la connexion au stockage durable.
"""
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)


def check_database_health(bind: Optional[Engine] = None) -> tuple[bool, str]:
    """
    Vérifie la santé de la connexion à la base de données.

    Args:
        bind: Engine à tester (engine central par défaut)

    Returns:
        tuple[bool, str]: (is_healthy, message)
            - is_healthy: True si la DB est accessible, False sinon
            - message: Message descriptif de l'état
    """
    if bind is None:
        from db_service.session import engine as bind

    try:
        # Essayer d'exécuter une simple requête SELECT 1
        with bind.connect() as connection:
            result = connection.execute(text("SELECT 1"))
            result.fetchone()

        return True, "Database connection successful"

    except SQLAlchemyError as e:
        error_msg = f"Database connection failed: {str(e)}"
        logger.error(error_msg)
        return False, error_msg
