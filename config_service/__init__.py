"""
Module de configuration centralisée pour Huddle.

Ce module fournit un point d'accès unique aux paramètres de configuration
pour tous les services de la plateforme Huddle.
"""

from config_service.config import settings

__all__ = ["settings"]
