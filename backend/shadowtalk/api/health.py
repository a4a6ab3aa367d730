from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_realtime
from shadowtalk.database import get_db
from shadowtalk.redis.client import redis_state
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> dict:
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "presence": redis_state(),
            "connections": len(realtime.transport),
        }
    except Exception as exc:
        return {"status": "unhealthy", "database": "disconnected", "error": str(exc)}
