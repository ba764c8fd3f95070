"""REST endpoints for conversations and messages."""

from datetime import datetime
from typing import Any, List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config_service.config import settings
from db_service.models.user import User
from db_service.session import get_db
from conversation_service.models.conversation_models import (
    ConversationCreate,
    ConversationSummary,
    MessageCreate,
    MessageView,
    PinUpdate,
    ReactionCreate,
    ReadReceipt,
)
from conversation_service.service import ConversationStore
from core.validators import dedupe
from user_service.api.deps import get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter()
messages_router = APIRouter()


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Conversations de l'utilisateur courant, les plus récemment actives d'abord."""
    return ConversationStore(db).list_for_user(current_user.id)


@router.post("", response_model=ConversationSummary)
async def create_conversation(
    conversation_in: ConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Créer une conversation.

    L'appelant est ajouté en tête des participants. Une conversation à deux
    existante entre les mêmes utilisateurs est réutilisée.
    """
    store = ConversationStore(db)
    participants = dedupe([current_user.id, *conversation_in.participant_ids])
    if len(participants) == 2 and not conversation_in.name:
        conversation = store.get_or_create_direct(current_user.id, participants[1])
    else:
        conversation = store.create(participants, current_user.id, conversation_in.name)
    return store.summary(conversation, current_user.id)


@router.get("/{conversation_id}/messages", response_model=List[MessageView])
async def list_messages(
    conversation_id: int,
    limit: int = Query(settings.MESSAGE_PAGE_LIMIT, ge=1, le=200),
    before: Optional[datetime] = Query(None),
    before_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Page de messages plus anciens que le curseur ``(before, before_id)``,
    en ordre chronologique.

    Raises:
        HuddleError 404: Conversation inconnue
        HuddleError 403: L'appelant ne participe pas à la conversation
    """
    return ConversationStore(db).list_messages(
        conversation_id, current_user.id, limit=limit, before=before, before_id=before_id
    )


@router.post("/{conversation_id}/messages", response_model=MessageView)
async def post_message(
    conversation_id: int,
    message_in: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    store = ConversationStore(db)
    message = store.post_message(
        conversation_id, current_user.id, message_in.content, kind=message_in.message_type
    )
    return store.message_view(message, current_user.id)


@router.post("/{conversation_id}/read", response_model=ReadReceipt)
async def mark_conversation_read(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return ReadReceipt(updated=ConversationStore(db).mark_read(conversation_id, current_user.id))


@messages_router.patch("/{message_id}/pin", response_model=MessageView)
async def pin_message(
    message_id: int,
    pin_in: PinUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    store = ConversationStore(db)
    message = store.set_pinned(message_id, pin_in.pinned, actor_id=current_user.id)
    return store.message_view(message, current_user.id)


@messages_router.post("/{message_id}/reactions", response_model=MessageView)
async def react_to_message(
    message_id: int,
    reaction_in: ReactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    store = ConversationStore(db)
    message = store.react(message_id, current_user.id, reaction_in.emoji)
    return store.message_view(message, current_user.id)
