"""Repository for persisting and retrieving conversation messages."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Session

from db_service.models.conversation import Message, MessageReaction

logger = logging.getLogger(__name__)


class MessageRepository:
    """Handle reads and writes for :class:`Message` and its reactions."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def add(
        self,
        *,
        conversation_id: int,
        sender_id: int,
        content: str,
        message_type: str,
        now: datetime,
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            created_at=now,
            updated_at=now,
        )
        self._db.add(message)
        self._db.flush()
        return message

    def get(self, message_id: int) -> Optional[Message]:
        return self._db.query(Message).filter(Message.id == message_id).first()

    def get_many(self, message_ids: Sequence[int]) -> Dict[int, Message]:
        if not message_ids:
            return {}
        messages = self._db.query(Message).filter(Message.id.in_(list(message_ids))).all()
        return {message.id: message for message in messages}

    def page(
        self,
        conversation_id: int,
        limit: int,
        before: Optional[datetime] = None,
        before_id: Optional[int] = None,
    ) -> List[Message]:
        """
        Up to ``limit`` messages older than the cursor, oldest first.

        The cursor is ``(before, before_id)``; messages stamped exactly
        ``before`` are kept when their id is lower than ``before_id``.
        """
        query = self._db.query(Message).filter(Message.conversation_id == conversation_id)
        if before is not None and before_id is not None:
            query = query.filter(
                or_(
                    Message.created_at < before,
                    and_(Message.created_at == before, Message.id < before_id),
                )
            )
        elif before is not None:
            query = query.filter(Message.created_at < before)
        newest_first = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(newest_first))

    def unread_counts(self, conversation_ids: Sequence[int], viewer_id: int) -> Dict[int, int]:
        """Unread messages from other senders, per conversation, in one grouped query."""
        if not conversation_ids:
            return {}
        rows = (
            self._db.query(Message.conversation_id, func.count(Message.id))
            .filter(
                Message.conversation_id.in_(list(conversation_ids)),
                Message.sender_id != viewer_id,
                Message.is_read.is_(False),
            )
            .group_by(Message.conversation_id)
            .all()
        )
        return {conversation_id: count for conversation_id, count in rows}

    def mark_read(self, conversation_id: int, viewer_id: int) -> int:
        result = self._db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.sender_id != viewer_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_reaction(self, message: Message, user_id: int, emoji: str, now: datetime) -> MessageReaction:
        reaction = MessageReaction(message_id=message.id, user_id=user_id, emoji=emoji, created_at=now)
        self._db.add(reaction)
        self._db.flush()
        return reaction

    def reactions_for(self, message_ids: Sequence[int]) -> Dict[int, List[MessageReaction]]:
        if not message_ids:
            return {}
        rows = (
            self._db.query(MessageReaction)
            .filter(MessageReaction.message_id.in_(list(message_ids)))
            .order_by(MessageReaction.message_id, MessageReaction.id)
            .all()
        )
        result: Dict[int, List[MessageReaction]] = defaultdict(list)
        for reaction in rows:
            result[reaction.message_id].append(reaction)
        return dict(result)
