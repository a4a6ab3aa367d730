import math
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_current_user, get_realtime, limit_message_rate
from shadowtalk.config import settings
from shadowtalk.core import events
from shadowtalk.database import get_db
from shadowtalk.models.private_message import PrivateMessage
from shadowtalk.models.user import User
from shadowtalk.schemas.message import Pagination
from shadowtalk.schemas.private_message import ConversationResponse, DMCreate, DMList, DMResponse
from shadowtalk.schemas.user import UserResponse
from shadowtalk.services.content_filter import validate_message_content
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

router = APIRouter(prefix="/dms", tags=["dms"])


def _visible_to(user_id: int):
    """DMs the user has not deleted on their side."""
    return and_(
        PrivateMessage.is_deleted == False,  # noqa: E712
        or_(
            and_(PrivateMessage.sender_id == user_id, PrivateMessage.deleted_by_sender == False),  # noqa: E712
            and_(PrivateMessage.receiver_id == user_id, PrivateMessage.deleted_by_receiver == False),  # noqa: E712
        ),
    )


def _between(a: int, b: int):
    return or_(
        and_(PrivateMessage.sender_id == a, PrivateMessage.receiver_id == b),
        and_(PrivateMessage.sender_id == b, PrivateMessage.receiver_id == a),
    )


# Declared before /{user_id} so "conversations" is not parsed as a user id
@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[ConversationResponse]:
    rows = (
        db.query(PrivateMessage)
        .filter(_visible_to(current_user.id))
        .order_by(PrivateMessage.created_at.desc(), PrivateMessage.id.desc())
        .all()
    )

    conversations: dict[int, ConversationResponse] = {}
    for dm in rows:
        other = dm.receiver if dm.sender_id == current_user.id else dm.sender
        conv = conversations.get(other.id)
        if conv is None:
            conv = ConversationResponse(
                user=UserResponse.model_validate(other),
                last_message=DMResponse.model_validate(dm),
            )
            conversations[other.id] = conv
        if dm.receiver_id == current_user.id and not dm.is_read:
            conv.unread_count += 1

    return list(conversations.values())


@router.get("/{user_id}", response_model=DMList)
async def get_conversation(
    user_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DMList:
    """History with one user, oldest first. Marks received messages as read."""
    query = db.query(PrivateMessage).filter(_between(current_user.id, user_id), _visible_to(current_user.id))
    total = query.count()
    rows = (
        query.order_by(PrivateMessage.created_at.desc(), PrivateMessage.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    rows.reverse()

    now = datetime.now(timezone.utc)
    unread = [dm for dm in rows if dm.receiver_id == current_user.id and not dm.is_read]
    for dm in unread:
        dm.is_read = True
        dm.read_at = now
    if unread:
        db.commit()
        for dm in unread:
            db.refresh(dm)

    return DMList(
        messages=[DMResponse.model_validate(dm) for dm in rows],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post(
    "/{user_id}",
    response_model=DMResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_message_rate)],
)
async def send_dm(
    user_id: int,
    message_in: DMCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> DMResponse:
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot send a message to yourself")
    receiver = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if not receiver:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    content = validate_message_content(message_in.content, settings.MAX_MESSAGE_LENGTH)

    dm = PrivateMessage(content=content, sender_id=current_user.id, receiver_id=receiver.id)
    db.add(dm)
    db.commit()
    db.refresh(dm)

    response = DMResponse.model_validate(dm)
    # The write is committed; the push is best effort
    await realtime.dm.deliver_pair(current_user.id, receiver.id, events.NEW_DM, {"message": response.to_wire()})
    return response


@router.delete("/{message_id}")
async def delete_dm(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    dm = db.query(PrivateMessage).filter(PrivateMessage.id == message_id, _visible_to(current_user.id)).first()
    if not dm:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")

    dm.delete_for(current_user.id)
    db.commit()
    return {"success": True}
