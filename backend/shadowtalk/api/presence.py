"""
Presence REST endpoints.

GET  /api/users/{user_id}/presence  -> one user's status
GET  /api/presence/bulk             -> several users' statuses (query param: ids=1,2,3)

Redis holds the shared view. A user registered on this process's realtime
registry is reported online even when Redis is disabled or has lost the key.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_current_user, get_realtime
from shadowtalk.database import get_db
from shadowtalk.models.user import User
from shadowtalk.redis import presence
from shadowtalk.schemas.base import CamelModel
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

router = APIRouter(prefix="/users", tags=["presence"])

MAX_BULK_IDS = 200


class PresenceResponse(CamelModel):
    user_id: int
    status: str


class BulkPresenceResponse(CamelModel):
    statuses: dict[int, str]


def _merge_local(statuses: dict[int, str], realtime: RealtimeDispatcher) -> dict[int, str]:
    return {uid: presence.ONLINE if uid in realtime.registry else s for uid, s in statuses.items()}


@router.get("/{user_id}/presence", response_model=PresenceResponse)
async def get_user_presence(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    realtime: RealtimeDispatcher = Depends(get_realtime),
):
    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    s = await presence.get_status(user_id)
    return PresenceResponse(user_id=user_id, status=_merge_local({user_id: s}, realtime)[user_id])


# Bulk endpoint lives under a separate prefix; main.py mounts it directly.
bulk_router = APIRouter(prefix="/presence", tags=["presence"])


@bulk_router.get("/bulk", response_model=BulkPresenceResponse)
async def get_bulk_presence(
    ids: str = Query(..., description="Comma-separated user IDs, e.g. 1,2,3"),
    current_user: User = Depends(get_current_user),
    realtime: RealtimeDispatcher = Depends(get_realtime),
):
    try:
        user_ids: list[int] = [int(i.strip()) for i in ids.split(",") if i.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="ids must be comma-separated integers") from None
    if len(user_ids) > MAX_BULK_IDS:
        raise HTTPException(status_code=400, detail=f"Too many ids (max {MAX_BULK_IDS})")
    statuses = await presence.get_bulk_status(user_ids)
    return BulkPresenceResponse(statuses=_merge_local(statuses, realtime))
