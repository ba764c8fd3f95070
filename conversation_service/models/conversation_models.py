"""Pydantic models for conversation requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

MessageKind = Literal["text", "image", "file", "system"]


class ParticipantView(BaseModel):
    """Public profile of a participant as embedded in listings."""

    id: int
    name: str
    username: str
    avatar: Optional[str] = None
    # Présence calculée en dehors de ce service
    online: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class LastMessageView(BaseModel):
    id: int
    sender_id: int
    sender_name: str
    sender_username: str
    content: str
    is_pinned: bool = False
    is_read: bool = False
    created_at: datetime


class ConversationSummary(BaseModel):
    id: int
    name: Optional[str] = None
    is_group: bool
    participants: List[ParticipantView] = Field(default_factory=list)
    last_message: Optional[LastMessageView] = None
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime


class ReactionView(BaseModel):
    user_id: int
    emoji: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageView(BaseModel):
    """A message as seen by one viewer.

    ``status`` only exists on the viewer's own messages; it is dropped from
    the serialized payload otherwise.
    """

    id: int
    conversation_id: int
    sender: ParticipantView
    content: str
    message_type: str = "text"
    is_read: bool = False
    is_pinned: bool = False
    reactions: List[ReactionView] = Field(default_factory=list)
    created_at: datetime
    status: Optional[Literal["delivered", "seen"]] = None

    @model_serializer(mode="wrap")
    def _drop_absent_status(self, handler) -> Dict[str, Any]:
        data = handler(self)
        if data.get("status") is None:
            data.pop("status", None)
        return data


class ConversationCreate(BaseModel):
    participant_ids: List[int] = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=255)


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=10000)
    message_type: MessageKind = "text"

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("content must be non-empty")
        return v.strip()


class ReactionCreate(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)


class PinUpdate(BaseModel):
    pinned: bool = True


class ReadReceipt(BaseModel):
    updated: int
