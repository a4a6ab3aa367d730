import re
import secrets
import string
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_current_user, get_room_or_404
from shadowtalk.database import get_db
from shadowtalk.models.room import Room
from shadowtalk.models.user import User
from shadowtalk.schemas.room import RoomCreate, RoomResponse

router = APIRouter(prefix="/rooms", tags=["rooms"])

_SLUG_SUFFIX_CHARS = string.ascii_lowercase + string.digits


def _slugify(name: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "room"
    suffix = "".join(secrets.choice(_SLUG_SUFFIX_CHARS) for _ in range(5))
    return f"{base}-{suffix}"


@router.get("", response_model=List[RoomResponse])
async def list_rooms(
    topic: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[RoomResponse]:
    query = db.query(Room).filter(Room.is_active == True)  # noqa: E712
    if topic:
        query = query.filter(Room.topic == topic)
    rooms = query.order_by(Room.last_activity.desc(), Room.id.desc()).all()
    return [RoomResponse.model_validate(r) for r in rooms]


@router.get("/my/joined", response_model=List[RoomResponse])
async def my_rooms(current_user: User = Depends(get_current_user)) -> List[RoomResponse]:
    return [RoomResponse.model_validate(r) for r in current_user.rooms if r.is_active]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    return RoomResponse.model_validate(get_room_or_404(room_id, db))


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_in: RoomCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    room = Room(
        name=room_in.name,
        slug=_slugify(room_in.name),
        description=room_in.description,
        topic=room_in.topic,
        created_by=current_user.id,
    )
    room.members.append(current_user)
    db.add(room)
    db.commit()
    db.refresh(room)
    return RoomResponse.model_validate(room)


@router.post("/{room_id}/join", response_model=RoomResponse)
async def join_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    room = get_room_or_404(room_id, db)
    if room.has_member(current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already a member of this room")
    room.members.append(current_user)
    db.commit()
    db.refresh(room)
    return RoomResponse.model_validate(room)


@router.post("/{room_id}/leave")
async def leave_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    room = get_room_or_404(room_id, db)
    if not room.has_member(current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not a member of this room")
    room.members.remove(current_user)
    db.commit()
    return {"success": True}
