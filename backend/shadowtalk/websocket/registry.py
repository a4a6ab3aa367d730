import logging

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps a durable user id to the transport session that gets its DM pushes.

    At most one entry per user: the last registration wins, so when a user
    has several tabs open only the most recent one receives DMs. Entries are
    memory-resident and lost on restart; clients re-register on every
    (re)connect.
    """

    def __init__(self) -> None:
        # user_id -> session_id
        self._sessions: dict[int, str] = {}

    def register(self, user_id: int, session_id: str) -> None:
        previous = self._sessions.get(user_id)
        self._sessions[user_id] = session_id
        if previous is not None and previous != session_id:
            logger.info("user %s re-registered: session %s replaces %s", user_id, session_id, previous)
        else:
            logger.info("user %s registered on session %s", user_id, session_id)

    def unregister(self, session_id: str) -> list[int]:
        """Drop every entry owned by ``session_id``. Returns the affected user ids."""
        removed = [uid for uid, sid in self._sessions.items() if sid == session_id]
        for uid in removed:
            del self._sessions[uid]
        return removed

    def lookup(self, user_id: int) -> str | None:
        return self._sessions.get(user_id)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
