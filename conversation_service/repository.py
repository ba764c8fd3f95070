from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from db_service.models.conversation import Conversation, ConversationParticipant


class ConversationRepository:
    """Persist and retrieve conversations and their participant lists."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(
        self,
        participant_ids: Sequence[int],
        created_by: int,
        name: Optional[str],
        now: datetime,
    ) -> Conversation:
        conv = Conversation(
            name=name,
            is_group=len(participant_ids) > 2,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        for position, user_id in enumerate(participant_ids):
            conv.participant_links.append(
                ConversationParticipant(user_id=user_id, position=position)
            )
        self._db.add(conv)
        # Flush the session so that an ID is assigned without committing the
        # transaction.  The surrounding service is responsible for committing
        # or rolling back the unit of work.
        self._db.flush()
        return conv

    def get(self, conversation_id: int) -> Optional[Conversation]:
        return (
            self._db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.is_deleted.is_(False))
            .first()
        )

    def is_participant(self, conversation_id: int, user_id: int) -> bool:
        return (
            self._db.query(ConversationParticipant.id)
            .filter(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .first()
            is not None
        )

    def list_for_user(self, user_id: int, limit: int) -> List[Conversation]:
        return (
            self._db.query(Conversation)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Conversation.id,
            )
            .filter(
                ConversationParticipant.user_id == user_id,
                Conversation.is_deleted.is_(False),
            )
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .limit(limit)
            .all()
        )

    def participants_for(self, conversation_ids: Sequence[int]) -> Dict[int, List[int]]:
        """Ordered participant ids per conversation, fetched in one query."""
        if not conversation_ids:
            return {}
        rows = (
            self._db.query(ConversationParticipant.conversation_id, ConversationParticipant.user_id)
            .filter(ConversationParticipant.conversation_id.in_(list(conversation_ids)))
            .order_by(ConversationParticipant.conversation_id, ConversationParticipant.position)
            .all()
        )
        result: Dict[int, List[int]] = defaultdict(list)
        for conversation_id, user_id in rows:
            result[conversation_id].append(user_id)
        return dict(result)

    def find_direct(self, user_a: int, user_b: int) -> Optional[Conversation]:
        """Non-deleted two-party conversation between exactly ``user_a`` and ``user_b``."""
        pair = (
            self._db.query(ConversationParticipant.conversation_id)
            .filter(ConversationParticipant.user_id.in_([user_a, user_b]))
            .group_by(ConversationParticipant.conversation_id)
            .having(func.count(func.distinct(ConversationParticipant.user_id)) == 2)
            .subquery()
        )
        sizes = (
            self._db.query(
                ConversationParticipant.conversation_id.label("conversation_id"),
                func.count(ConversationParticipant.id).label("size"),
            )
            .group_by(ConversationParticipant.conversation_id)
            .subquery()
        )
        return (
            self._db.query(Conversation)
            .join(pair, pair.c.conversation_id == Conversation.id)
            .join(sizes, sizes.c.conversation_id == Conversation.id)
            .filter(
                sizes.c.size == 2,
                Conversation.is_group.is_(False),
                Conversation.is_deleted.is_(False),
            )
            .order_by(Conversation.id)
            .first()
        )

    def touch(self, conversation: Conversation, last_message_id: int, now: datetime) -> None:
        conversation.last_message_id = last_message_id
        conversation.updated_at = now
        self._db.add(conversation)
