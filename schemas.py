"""
Request/response schemas for the resource services.

Documents themselves are schemaless: users, videos, comments and
playlists are stored exactly as posted. Only the bodies of the
specialised operations, and the subscription document the service
builds itself, get a model here.

Collections:
- users          (key: userId)
- videos         (key: videoId, counter: likes)
- comments       (key: commentId, counter: likes)
- playlists      (key: playlistId, videos: list of videoId)
- subscriptions  (key: subscriptionId, unique pair: subscriber/channel)
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class VideoIdRequest(BaseModel):
    # Any JSON value is stored as given; only null is refused.
    videoId: Any = Field(..., description="Video to add to or remove from the playlist")

    @field_validator("videoId")
    @classmethod
    def video_id_not_null(cls, v):
        if v is None:
            raise ValueError("videoId must not be null")
        return v


class PlaylistVideosRequest(BaseModel):
    videoId: Any = Field(None, description="Appended to videos if not already present")
    updates: Optional[Dict[str, Any]] = Field(None, description="Fields merged into the playlist")


class SubscriptionRequest(BaseModel):
    # Presence is checked by the service so a missing field is a 400, not a parse error.
    subscriber: Optional[str] = None
    channel: Optional[str] = None


class Subscription(BaseModel):
    subscriptionId: str
    subscriber: str = Field(..., description="userId of the subscribing user")
    channel: str = Field(..., description="userId of the channel being subscribed to")
    subscribedAt: datetime


class MessageResponse(BaseModel):
    message: str
    id: Optional[str] = None
    modified: Optional[int] = None
    deleted: Optional[int] = None
    likes: Optional[int] = None
