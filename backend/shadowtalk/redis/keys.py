"""
Namespaced Redis key helpers.

Keys are prefixed with SERVER_DOMAIN so several deployments can share one
Redis without colliding.
"""

from shadowtalk.config import settings


def presence_key(user_id: int) -> str:
    return f"{settings.SERVER_DOMAIN}:presence:{user_id}"
