from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shadowtalk.database import get_db
from shadowtalk.models.room import Room
from shadowtalk.models.user import User
from shadowtalk.services import auth_service
from shadowtalk.services.rate_limiter import MESSAGE_LIMIT_DETAIL, SESSION_LIMIT_DETAIL, RateLimits
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    user = auth_service.get_user_from_token(credentials.credentials, db)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return user


def get_realtime(request: Request) -> RealtimeDispatcher:
    """The process-wide realtime dispatcher built in the app lifespan."""
    return request.app.state.realtime


def get_room_or_404(room_id: int, db: Session) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.is_active == True).first()  # noqa: E712
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def require_room_member(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Room:
    """
    Verifies the current user is a durable member of room_id.
    Raises 404 if the room doesn't exist, 403 if the user is not a member.

    This is the authorization gate for every room write; the realtime room
    channels themselves never check membership.
    """
    room = get_room_or_404(room_id, db)
    if not room.has_member(current_user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You must be a member of this room")
    return room


def get_rate_limits(request: Request) -> RateLimits:
    return request.app.state.rate_limits


def limit_message_rate(
    current_user: User = Depends(get_current_user),
    limits: RateLimits = Depends(get_rate_limits),
) -> None:
    """429 once a user sends more room messages or DMs than the window allows."""
    if limits.enabled:
        limits.messages.check(f"user:{current_user.id}", MESSAGE_LIMIT_DETAIL)


def limit_session_creation(request: Request, limits: RateLimits = Depends(get_rate_limits)) -> None:
    """429 once one client address mints too many ShadowIDs."""
    if limits.enabled:
        host = request.client.host if request.client else "unknown"
        limits.sessions.check(f"ip:{host}", SESSION_LIMIT_DETAIL)
