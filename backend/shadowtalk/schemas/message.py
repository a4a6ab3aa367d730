from datetime import datetime

from shadowtalk.models.message import Message
from shadowtalk.schemas.base import CamelModel
from shadowtalk.schemas.reaction import ReactionGroup, group_reactions
from shadowtalk.schemas.user import UserSummary


class MessageCreate(CamelModel):
    # Length and emptiness are checked by the route so they map to 400, not 422
    content: str = ""


class MessageResponse(CamelModel):
    id: int
    content: str
    sender_id: int
    sender: UserSummary
    room_id: int
    parent_message_id: int | None = None
    reactions: list[ReactionGroup] = []
    created_at: datetime
    edited_at: datetime | None = None

    @classmethod
    def from_message(cls, msg: Message) -> "MessageResponse":
        return cls(
            id=msg.id,
            content=msg.content,
            sender_id=msg.sender_id,
            sender=UserSummary.model_validate(msg.sender),
            room_id=msg.room_id,
            parent_message_id=msg.parent_message_id,
            reactions=group_reactions(msg.reactions),
            created_at=msg.created_at,
            edited_at=msg.edited_at,
        )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class MessageList(CamelModel):
    messages: list[MessageResponse]
    pagination: Pagination


class ReplyList(CamelModel):
    replies: list[MessageResponse]
