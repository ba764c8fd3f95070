"""Pydantic models for meetings."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MeetingStatus = Literal["scheduled", "active", "ended"]
MeetingType = Literal["video", "audio", "screen-share"]


class MeetingSettings(BaseModel):
    allowScreenShare: Optional[bool] = None
    allowChat: Optional[bool] = None
    allowRecording: Optional[bool] = None
    maxParticipants: Optional[int] = None


class MeetingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    room_id: Optional[str] = Field(None, max_length=64)
    meeting_type: MeetingType = "video"
    participant_ids: List[int] = Field(default_factory=list)
    settings: Optional[MeetingSettings] = None


class MeetingStatusUpdate(BaseModel):
    status: str


class MeetingAnalyticsUpdate(BaseModel):
    analytics: Dict[str, Any]


class RecordingCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=1024)
    duration: float = Field(0, ge=0)


class RecordingRead(BaseModel):
    url: str
    duration: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MeetingRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    host_id: int
    participant_ids: List[int] = Field(default_factory=list)
    start_time: datetime
    end_time: Optional[datetime] = None
    status: MeetingStatus
    room_id: str
    meeting_type: MeetingType
    settings: Dict[str, Any]
    analytics: Dict[str, Any] = Field(default_factory=dict)
    recordings: List[RecordingRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoomValidation(BaseModel):
    exists: bool
    meeting: Optional[MeetingRead] = None
