from datetime import datetime

from shadowtalk.schemas.base import CamelModel
from shadowtalk.schemas.message import Pagination
from shadowtalk.schemas.user import UserResponse, UserSummary


class DMCreate(CamelModel):
    content: str = ""


class DMResponse(CamelModel):
    id: int
    content: str
    sender_id: int
    receiver_id: int
    sender: UserSummary
    receiver: UserSummary
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime


class DMList(CamelModel):
    messages: list[DMResponse]
    pagination: Pagination


class ConversationResponse(CamelModel):
    user: UserResponse
    last_message: DMResponse | None = None
    unread_count: int = 0
