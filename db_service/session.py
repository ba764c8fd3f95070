from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager

from config_service.config import settings

# URL assemblée par la configuration (DATABASE_URL ou composants POSTGRES_*)
database_url = settings.SQLALCHEMY_DATABASE_URI

# Les options de pool ne s'appliquent qu'aux vrais serveurs de base de données
if database_url.startswith("sqlite"):
    engine_options = {"connect_args": {"check_same_thread": False}}
else:
    engine_options = {
        "pool_size": 20,
        "max_overflow": 30,
        "pool_recycle": 3600,  # Recycler les connexions après 1h
    }

# Création de l'engine central
engine = create_engine(database_url, pool_pre_ping=True, **engine_options)

# Création d'une factory de session partagée
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Crée les tables manquantes (déploiements sans migrations, tests)."""
    from db_service.base import Base
    import db_service.models  # noqa: F401 - enregistre les modèles

    Base.metadata.create_all(bind=engine)


# Pour obtenir une session de base de données
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Helper contextmanager pour les opérations qui ne sont pas dans des endpoints FastAPI
@contextmanager
def get_db_context():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
