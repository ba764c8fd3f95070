"""
Configuration globale des tests pour Huddle
"""
import os
import itertools
from datetime import datetime, timedelta, timezone

import pytest

# ============================================================================
# VARIABLES D'ENVIRONNEMENT - AVANT TOUS LES IMPORTS DU PROJET
# ============================================================================

SECRET_KEY_TEST = "a" * 32 + "b" * 32

os.environ.setdefault("SECRET_KEY", SECRET_KEY_TEST)
os.environ.setdefault("IDENTITY_TOKEN_SECRET", SECRET_KEY_TEST)
os.environ.setdefault("IDENTITY_TOKEN_ALGORITHM", "HS256")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EXPOSE_OTP_IN_RESPONSE", "true")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from db_service.base import Base  # noqa: E402
import db_service.models  # noqa: E402,F401
from db_service.models.user import User  # noqa: E402


# ============================================================================
# BASE DE DONNÉES
# ============================================================================

def create_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)


@pytest.fixture
def db():
    Session = create_session()
    session = Session()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# FABRIQUES
# ============================================================================

@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make_user(username=None, **kwargs):
        n = next(counter)
        username = username or f"member{n}"
        user = User(
            external_subject=kwargs.pop("external_subject", f"subject-{username}"),
            email=kwargs.pop("email", f"{username}@example.com"),
            name=kwargs.pop("name", username.title()),
            username=username,
            avatar=kwargs.pop("avatar", f"https://avatars.example.com/{username}.png"),
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


class FakeClock:
    """Horloge contrôlable : chaque appel avance d'un pas fixe."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock()
