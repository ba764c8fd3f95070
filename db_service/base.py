from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime

from core.validators import utcnow


Base = declarative_base()


class TimestampMixin:
    """Mixin qui ajoute des champs de timestamp à tous les modèles.

    Les valeurs sont produites côté application (précision microseconde) pour
    que l'ordre chronologique ne dépende pas de l'horloge de la base.
    """

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
