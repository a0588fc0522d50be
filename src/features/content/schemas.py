"""Content schemas (DTOs)."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

YOUTUBE_ID_PATTERN = r"^[a-zA-Z0-9_-]+$"


# Request schemas
class ChannelCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    youtube_channel_id: str = Field(..., min_length=1, max_length=100, pattern=YOUTUBE_ID_PATTERN)


class VideoCreateRequest(BaseModel):
    channel_id: UUID
    youtube_video_id: str = Field(..., min_length=1, max_length=50, pattern=YOUTUBE_ID_PATTERN)
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    published_at: dt.datetime | None = None


class AnalyticsCreateRequest(BaseModel):
    """One daily snapshot; posting the same video and day again replaces the numbers."""

    video_id: UUID
    date: dt.date
    views: int = Field(0, ge=0)
    watch_time_minutes: int = Field(0, ge=0)
    avg_view_duration_seconds: int = Field(0, ge=0)


# Response schemas
class ChannelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    youtube_channel_id: str
    subscribers: int
    created_at: dt.datetime
    updated_at: dt.datetime


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    channel_id: UUID
    youtube_video_id: str
    title: str
    description: str | None
    published_at: dt.datetime | None
    views: int
    likes: int
    comments: int
    created_at: dt.datetime


class AnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    video_id: UUID
    date: dt.date
    views: int
    watch_time_minutes: int
    avg_view_duration_seconds: int
