from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text

from db_service.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Sujet stable fourni par le fournisseur d'identité externe
    external_subject = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(320), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    # Toujours en minuscules, [a-z0-9_]{3,30}
    username = Column(String(30), unique=True, index=True, nullable=False)
    avatar = Column(String(512), nullable=False)
    bio = Column(Text, nullable=True)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
