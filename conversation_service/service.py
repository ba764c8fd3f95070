"""High level operations for conversations and their messages."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from config_service.config import settings
from core.decorators import storage_guard
from core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from core.validators import dedupe, ensure_aware, non_empty_str, one_of, utcnow
from db_service.models.conversation import MESSAGE_TYPES, Conversation, Message
from db_service.models.user import User
from conversation_service.message_repository import MessageRepository
from conversation_service.models.conversation_models import (
    ConversationSummary,
    LastMessageView,
    MessageView,
    ParticipantView,
    ReactionView,
)
from user_service.constants import PLACEHOLDER_NAME, PLACEHOLDER_USERNAME
from user_service.services.users import get_users_by_ids
from .repository import ConversationRepository

logger = logging.getLogger(__name__)


def participant_view(user_id: int, directory: Dict[int, User]) -> ParticipantView:
    """Public profile for ``user_id``, or the placeholder identity when gone."""
    user = directory.get(user_id)
    if user is None or user.is_deleted:
        return ParticipantView(id=user_id, name=PLACEHOLDER_NAME, username=PLACEHOLDER_USERNAME)
    return ParticipantView(id=user.id, name=user.name, username=user.username, avatar=user.avatar)


class ConversationStore:
    """Unified service composing the conversation and message repositories.

    Read paths fetch participants, senders, reactions and unread counts with
    explicit batched queries rather than relying on lazy loading.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock
        self._conv_repo = ConversationRepository(db)
        self._msg_repo = MessageRepository(db)

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------
    def _require_conversation(self, conversation_id: int) -> Conversation:
        conv = self._conv_repo.get(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation not found", details={"conversation_id": conversation_id})
        return conv

    def _require_participant(self, conversation_id: int, user_id: int) -> None:
        if not self._conv_repo.is_participant(conversation_id, user_id):
            raise AccessDeniedError(
                "Not a participant of this conversation",
                details={"conversation_id": conversation_id},
            )

    def _require_message(self, message_id: int) -> Message:
        message = self._msg_repo.get(message_id)
        if message is None:
            raise NotFoundError("Message not found", details={"message_id": message_id})
        return message

    # ------------------------------------------------------------------
    # Conversation operations
    # ------------------------------------------------------------------
    @storage_guard
    def create(
        self,
        participant_ids: Iterable[int],
        created_by: int,
        name: Optional[str] = None,
    ) -> Conversation:
        ids = dedupe(participant_ids)
        if not ids:
            raise ValidationError("A conversation needs at least one participant")
        if created_by not in ids:
            raise ValidationError(
                "The creator must be a participant",
                details={"created_by": created_by},
            )
        known = get_users_by_ids(self._db, ids)
        unknown = [user_id for user_id in ids if user_id not in known or known[user_id].is_deleted]
        if unknown:
            raise ValidationError("Unknown participants", details={"user_ids": unknown})

        name = name.strip() if name and name.strip() else None
        conv = self._conv_repo.create(ids, created_by, name, self._clock())
        self._db.commit()
        self._db.refresh(conv)
        logger.info(f"Conversation {conv.id} created by user {created_by} ({len(ids)} participants)")
        return conv

    def get_or_create_direct(self, user_a: int, user_b: int) -> Conversation:
        if user_a == user_b:
            raise ValidationError("A direct conversation needs two distinct users")
        existing = self._conv_repo.find_direct(user_a, user_b)
        if existing is not None:
            return existing
        return self.create([user_a, user_b], created_by=user_a)

    def _summaries(self, conversations: Sequence[Conversation], viewer_id: int) -> List[ConversationSummary]:
        conv_ids = [conv.id for conv in conversations]
        participants = self._conv_repo.participants_for(conv_ids)
        last_messages = self._msg_repo.get_many(
            [conv.last_message_id for conv in conversations if conv.last_message_id]
        )
        unread = self._msg_repo.unread_counts(conv_ids, viewer_id)

        user_ids = {uid for ids in participants.values() for uid in ids}
        user_ids.update(message.sender_id for message in last_messages.values())
        directory = get_users_by_ids(self._db, list(user_ids))

        summaries = []
        for conv in conversations:
            others = [uid for uid in participants.get(conv.id, []) if uid != viewer_id]
            last_view = None
            last = last_messages.get(conv.last_message_id) if conv.last_message_id else None
            if last is not None:
                sender = participant_view(last.sender_id, directory)
                last_view = LastMessageView(
                    id=last.id,
                    sender_id=last.sender_id,
                    sender_name=sender.name,
                    sender_username=sender.username,
                    content=last.content,
                    is_pinned=last.is_pinned,
                    is_read=last.is_read,
                    created_at=ensure_aware(last.created_at),
                )
            summaries.append(
                ConversationSummary(
                    id=conv.id,
                    name=conv.name,
                    is_group=conv.is_group,
                    participants=[participant_view(uid, directory) for uid in others],
                    last_message=last_view,
                    unread_count=unread.get(conv.id, 0),
                    created_at=ensure_aware(conv.created_at),
                    updated_at=ensure_aware(conv.updated_at),
                )
            )
        return summaries

    def list_for_user(self, user_id: int, limit: Optional[int] = None) -> List[ConversationSummary]:
        """Non-deleted conversations of ``user_id``, most recently active first."""
        limit = limit or settings.CONVERSATION_LIST_LIMIT
        conversations = self._conv_repo.list_for_user(user_id, limit)
        return self._summaries(conversations, user_id)

    def summary(self, conversation: Conversation, viewer_id: int) -> ConversationSummary:
        return self._summaries([conversation], viewer_id)[0]

    # ------------------------------------------------------------------
    # Message operations
    # ------------------------------------------------------------------
    def _views(self, messages: Sequence[Message], viewer_id: int) -> List[MessageView]:
        directory = get_users_by_ids(self._db, list({m.sender_id for m in messages}))
        reactions = self._msg_repo.reactions_for([m.id for m in messages])
        views = []
        for message in messages:
            status = None
            if message.sender_id == viewer_id:
                status = "seen" if message.is_read else "delivered"
            views.append(
                MessageView(
                    id=message.id,
                    conversation_id=message.conversation_id,
                    sender=participant_view(message.sender_id, directory),
                    content=message.content,
                    message_type=message.message_type,
                    is_read=message.is_read,
                    is_pinned=message.is_pinned,
                    reactions=[
                        ReactionView(
                            user_id=r.user_id,
                            emoji=r.emoji,
                            created_at=ensure_aware(r.created_at),
                        )
                        for r in reactions.get(message.id, [])
                    ],
                    created_at=ensure_aware(message.created_at),
                    status=status,
                )
            )
        return views

    def message_view(self, message: Message, viewer_id: int) -> MessageView:
        return self._views([message], viewer_id)[0]

    def list_messages(
        self,
        conversation_id: int,
        viewer_id: int,
        limit: Optional[int] = None,
        before: Optional[datetime] = None,
        before_id: Optional[int] = None,
    ) -> List[MessageView]:
        """
        Page of messages older than the ``(before, before_id)`` cursor, oldest first.

        Passing the ``created_at`` and ``id`` of the first returned message as
        the next cursor walks the history backwards without gaps or repeats,
        including across messages sharing a timestamp.
        """
        self._require_conversation(conversation_id)
        self._require_participant(conversation_id, viewer_id)

        limit = max(1, limit or settings.MESSAGE_PAGE_LIMIT)
        if before is not None:
            before = ensure_aware(before).astimezone(timezone.utc)
        messages = self._msg_repo.page(conversation_id, limit, before, before_id)
        return self._views(messages, viewer_id)

    @storage_guard
    def post_message(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        kind: str = "text",
    ) -> Message:
        content = non_empty_str(content, "content")
        one_of(kind, MESSAGE_TYPES, "message_type")
        conv = self._require_conversation(conversation_id)
        self._require_participant(conversation_id, sender_id)

        now = self._clock()
        message = self._msg_repo.add(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=kind,
            now=now,
        )
        self._db.commit()

        # Second commit : le pointeur peut rester en retard si le processus s'arrête ici
        self._conv_repo.touch(conv, message.id, now)
        self._db.commit()
        self._db.refresh(message)
        return message

    @storage_guard
    def mark_read(self, conversation_id: int, viewer_id: int) -> int:
        """Flag every unread message from other senders as read."""
        self._require_conversation(conversation_id)
        self._require_participant(conversation_id, viewer_id)
        updated = self._msg_repo.mark_read(conversation_id, viewer_id)
        self._db.commit()
        return updated

    @storage_guard
    def set_pinned(self, message_id: int, pinned: bool, actor_id: Optional[int] = None) -> Message:
        message = self._require_message(message_id)
        if actor_id is not None:
            self._require_participant(message.conversation_id, actor_id)
        message.is_pinned = bool(pinned)
        self._db.add(message)
        self._db.commit()
        self._db.refresh(message)
        return message

    @storage_guard
    def react(self, message_id: int, user_id: int, emoji: str) -> Message:
        """Append a reaction; repeated reactions from one user accumulate."""
        emoji = non_empty_str(emoji, "emoji")
        message = self._require_message(message_id)
        self._require_participant(message.conversation_id, user_id)
        self._msg_repo.add_reaction(message, user_id, emoji, self._clock())
        self._db.commit()
        self._db.refresh(message)
        return message
