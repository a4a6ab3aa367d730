import math
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_current_user, get_realtime, limit_message_rate, require_room_member
from shadowtalk.config import settings
from shadowtalk.core import events
from shadowtalk.database import get_db
from shadowtalk.models.message import Message
from shadowtalk.models.reaction import Reaction
from shadowtalk.models.room import Room
from shadowtalk.models.user import User
from shadowtalk.schemas.message import MessageCreate, MessageList, MessageResponse, Pagination, ReplyList
from shadowtalk.schemas.reaction import ReactionCreate, ReactionSummary, group_reactions
from shadowtalk.services.content_filter import validate_message_content
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

router = APIRouter(prefix="/messages", tags=["messages"])


def _get_message_or_404(message_id: int, db: Session) -> Message:
    message = db.query(Message).filter(Message.id == message_id, Message.is_deleted == False).first()  # noqa: E712
    if not message:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


def _require_member_of(room: Room, user: User) -> None:
    if not room.is_active or not room.has_member(user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You must be a member of this room")


def _touch_room(room: Room) -> None:
    room.message_count = (room.message_count or 0) + 1
    room.last_activity = datetime.now(timezone.utc)


@router.get("/{room_id}", response_model=MessageList)
async def list_messages(
    room_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    room: Room = Depends(require_room_member),
    db: Session = Depends(get_db),
) -> MessageList:
    """
    Top-level messages of a room. Page 1 is the most recent ``limit``
    messages; each page is returned oldest first.
    """
    query = db.query(Message).filter(
        Message.room_id == room.id,
        Message.parent_message_id.is_(None),
        Message.is_deleted == False,  # noqa: E712
    )
    total = query.count()
    rows = query.order_by(Message.created_at.desc(), Message.id.desc()).offset((page - 1) * limit).limit(limit).all()
    rows.reverse()

    return MessageList(
        messages=[MessageResponse.from_message(m) for m in rows],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post(
    "/{room_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_message_rate)],
)
async def send_message(
    room_id: int,
    message_in: MessageCreate,
    room: Room = Depends(require_room_member),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> MessageResponse:
    content = validate_message_content(message_in.content, settings.MAX_MESSAGE_LENGTH)

    message = Message(content=content, sender_id=current_user.id, room_id=room.id)
    db.add(message)
    _touch_room(room)
    db.commit()
    db.refresh(message)

    response = MessageResponse.from_message(message)
    await realtime.rooms.broadcast(room.id, events.NEW_MESSAGE, {"message": response.to_wire()})
    return response


@router.post(
    "/{message_id}/reply",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_message_rate)],
)
async def reply_to_message(
    message_id: int,
    message_in: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> MessageResponse:
    parent = _get_message_or_404(message_id, db)
    room = parent.room
    _require_member_of(room, current_user)
    content = validate_message_content(message_in.content, settings.MAX_MESSAGE_LENGTH)

    # Threads are one level deep: replying to a reply attaches to its parent
    root_id = parent.parent_message_id or parent.id
    reply = Message(content=content, sender_id=current_user.id, room_id=room.id, parent_message_id=root_id)
    db.add(reply)
    _touch_room(room)
    db.commit()
    db.refresh(reply)

    response = MessageResponse.from_message(reply)
    await realtime.rooms.broadcast(
        room.id,
        events.NEW_REPLY,
        {"parentMessageId": root_id, "reply": response.to_wire()},
    )
    return response


@router.get("/{message_id}/replies", response_model=ReplyList)
async def list_replies(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReplyList:
    parent = _get_message_or_404(message_id, db)
    _require_member_of(parent.room, current_user)

    replies = (
        db.query(Message)
        .filter(Message.parent_message_id == parent.id, Message.is_deleted == False)  # noqa: E712
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )
    return ReplyList(replies=[MessageResponse.from_message(m) for m in replies])


@router.post("/{message_id}/react", response_model=ReactionSummary)
async def toggle_reaction(
    message_id: int,
    reaction_in: ReactionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> ReactionSummary:
    """Add the reaction, or remove it if the user already reacted with that emoji."""
    message = _get_message_or_404(message_id, db)
    _require_member_of(message.room, current_user)

    existing = (
        db.query(Reaction)
        .filter(
            Reaction.message_id == message.id,
            Reaction.user_id == current_user.id,
            Reaction.emoji == reaction_in.emoji,
        )
        .first()
    )
    if existing:
        db.delete(existing)
    else:
        db.add(Reaction(message_id=message.id, user_id=current_user.id, emoji=reaction_in.emoji))
    db.commit()
    db.refresh(message)

    summary = ReactionSummary(message_id=message.id, reactions=group_reactions(message.reactions))
    await realtime.rooms.broadcast(message.room_id, events.MESSAGE_REACTED, summary.to_wire())
    return summary
