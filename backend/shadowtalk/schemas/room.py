from datetime import datetime

from pydantic import Field, field_validator

from shadowtalk.models.room import TOPICS
from shadowtalk.schemas.base import CamelModel


class RoomCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=50)
    description: str = Field("", max_length=200)
    topic: str

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Room name must be between 3 and 50 characters")
        return v

    @field_validator("topic")
    @classmethod
    def known_topic(cls, v: str) -> str:
        if v not in TOPICS:
            raise ValueError(f"topic must be one of {list(TOPICS)}")
        return v


class RoomResponse(CamelModel):
    id: int
    name: str
    slug: str
    description: str | None = ""
    topic: str
    created_by: int
    member_count: int
    message_count: int
    last_activity: datetime | None = None
    created_at: datetime
