# Realtime event type definitions.
# Every frame on /ws is a JSON object {"type": <one of these>, ...payload}.

# ── Client → server ──────────────────────────────────────────────────────────
JOIN_DM_SESSION = "join_dm_session"
JOIN_ROOM = "join_room"
LEAVE_ROOM = "leave_room"
TYPING = "typing"
STOP_TYPING = "stop_typing"
PING = "ping"

VOICE_JOIN = "voice:join"
VOICE_LEAVE = "voice:leave"
VOICE_UPDATE_STATUS = "voice:update_status"
VOICE_SPEAKING = "voice:speaking"
VOICE_STOPPED_SPEAKING = "voice:stopped_speaking"

# WebRTC signaling: same name in both directions, relayed verbatim
WEBRTC_OFFER = "webrtc:offer"
WEBRTC_ANSWER = "webrtc:answer"
ICE_CANDIDATE = "ice:candidate"

SIGNAL_KINDS = frozenset({WEBRTC_OFFER, WEBRTC_ANSWER, ICE_CANDIDATE})

# ── Server → client ──────────────────────────────────────────────────────────
SESSION = "session"
PONG = "pong"

NEW_MESSAGE = "new_message"
NEW_DM = "new_dm"
NEW_REPLY = "new_reply"
MESSAGE_REACTED = "message_reacted"

USER_TYPING = "user_typing"
USER_STOPPED_TYPING = "user_stopped_typing"

VOICE_PARTICIPANTS = "voice:participants"
VOICE_USER_JOINED = "voice:user_joined"
VOICE_USER_LEFT = "voice:user_left"
VOICE_USER_STATUS_CHANGED = "voice:user_status_changed"
VOICE_USER_SPEAKING = "voice:user_speaking"
VOICE_USER_STOPPED_SPEAKING = "voice:user_stopped_speaking"
