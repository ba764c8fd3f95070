# db_service/models/conversation.py
"""
Modèles SQLAlchemy pour la messagerie.

Une conversation possède un ensemble ordonné de participants et ses messages.
Le pointeur ``last_message_id`` est une dénormalisation volontaire : il n'a
pas de clé étrangère et peut être légèrement en retard sur le dernier message
si le processus s'arrête entre l'insertion du message et la mise à jour du
pointeur.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from core.validators import utcnow
from db_service.base import Base, TimestampMixin


MESSAGE_TYPES = ("text", "image", "file", "system")


class Conversation(Base, TimestampMixin):
    """
    Table principale des conversations.

    ``is_group`` est dérivé du nombre de participants à la création et n'est
    jamais modifié ensuite.
    """

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    is_group = Column(Boolean, default=False, nullable=False)
    last_message_id = Column(Integer, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # Relations
    participant_links = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationParticipant.position",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def participant_ids(self):
        return [link.user_id for link in self.participant_links]

    def __repr__(self):
        return f"<Conversation(id={self.id}, participants={self.participant_ids}, is_group={self.is_group})>"


class ConversationParticipant(Base):
    """Table d'association ordonnée conversation <-> utilisateur."""

    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
    )

    id = Column(Integer, primary_key=True)
    conversation_id = Column(
        Integer,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    conversation = relationship("Conversation", back_populates="participant_links")


class Message(Base, TimestampMixin):
    """Message appartenant à une seule conversation pour toute sa durée de vie."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Référence faible : la suppression logique d'un utilisateur ne touche pas ses messages
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default="text", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
    reactions = relationship(
        "MessageReaction",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageReaction.id",
    )

    def __repr__(self):
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, sender_id={self.sender_id})>"


class MessageReaction(Base):
    """Réaction emoji; les réactions répétées d'un même utilisateur s'accumulent."""

    __tablename__ = "message_reactions"

    id = Column(Integer, primary_key=True)
    message_id = Column(
        Integer,
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    emoji = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    message = relationship("Message", back_populates="reactions")
