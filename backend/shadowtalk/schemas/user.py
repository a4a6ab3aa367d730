from datetime import datetime

from shadowtalk.schemas.base import CamelModel


class UserSummary(CamelModel):
    """Public face of a ShadowID embedded in messages."""

    id: int
    anonymous_id: str
    nickname: str | None = None


class UserResponse(UserSummary):
    created_at: datetime
    last_seen: datetime | None = None
