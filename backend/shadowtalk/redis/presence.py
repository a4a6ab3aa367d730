"""
Presence manager: tracks whether a ShadowID has a live realtime session.

Key scheme:
  {SERVER_DOMAIN}:presence:{user_id}  →  "online"
  TTL = REDIS_PRESENCE_TTL seconds, refreshed by socket pings.

Set when a session registers via join_dm_session, cleared when the user's
last registered session disconnects. If Redis is unavailable every call is a
no-op and get_status returns "offline".
"""

import logging

from shadowtalk.config import settings
from shadowtalk.redis.client import get_redis
from shadowtalk.redis.keys import presence_key

logger = logging.getLogger(__name__)

ONLINE = "online"
OFFLINE = "offline"


async def set_online(user_id: int) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        await r.setex(presence_key(user_id), settings.REDIS_PRESENCE_TTL, ONLINE)
    except Exception as exc:
        logger.warning("presence.set_online failed: %s", exc)


async def set_offline(user_id: int) -> None:
    """Immediately mark a user as offline by deleting their key."""
    r = get_redis()
    if r is None:
        return
    try:
        await r.delete(presence_key(user_id))
    except Exception as exc:
        logger.warning("presence.set_offline failed: %s", exc)


async def heartbeat(user_id: int) -> None:
    """Refresh the TTL without changing the status value."""
    r = get_redis()
    if r is None:
        return
    try:
        await r.expire(presence_key(user_id), settings.REDIS_PRESENCE_TTL)
    except Exception as exc:
        logger.warning("presence.heartbeat failed: %s", exc)


async def get_status(user_id: int) -> str:
    r = get_redis()
    if r is None:
        return OFFLINE
    try:
        value = await r.get(presence_key(user_id))
        return value if value else OFFLINE
    except Exception as exc:
        logger.warning("presence.get_status failed: %s", exc)
        return OFFLINE


async def get_bulk_status(user_ids: list[int]) -> dict[int, str]:
    """Return {user_id: status} for multiple users in a single pipeline."""
    if not user_ids:
        return {}
    r = get_redis()
    if r is None:
        return {uid: OFFLINE for uid in user_ids}
    try:
        pipe = r.pipeline()
        for uid in user_ids:
            pipe.get(presence_key(uid))
        values = await pipe.execute()
        return {uid: (v if v else OFFLINE) for uid, v in zip(user_ids, values)}
    except Exception as exc:
        logger.warning("presence.get_bulk_status failed: %s", exc)
        return {uid: OFFLINE for uid in user_ids}
