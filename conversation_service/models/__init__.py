"""Expose public models for the conversation service."""

from .conversation_models import (
    ConversationCreate,
    ConversationSummary,
    LastMessageView,
    MessageCreate,
    MessageView,
    ParticipantView,
    ReactionCreate,
    ReactionView,
)
from .meeting_models import (
    MeetingAnalyticsUpdate,
    MeetingCreate,
    MeetingRead,
    MeetingStatusUpdate,
    RecordingCreate,
    RoomValidation,
)

__all__ = [
    "ConversationCreate",
    "ConversationSummary",
    "LastMessageView",
    "MessageCreate",
    "MessageView",
    "ParticipantView",
    "ReactionCreate",
    "ReactionView",
    "MeetingAnalyticsUpdate",
    "MeetingCreate",
    "MeetingRead",
    "MeetingStatusUpdate",
    "RecordingCreate",
    "RoomValidation",
]
