from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./shadowtalk.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    # Anonymous sessions are long-lived: 30 days, matching the ShadowID token lifetime
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Create tables at startup instead of running migrations (dev / single-node)
    CREATE_TABLES_ON_STARTUP: bool = True

    # Redis backs presence only. The realtime core itself is in-memory.
    # Set to empty string to disable Redis (presence reports everyone offline)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PRESENCE_TTL: int = 300  # seconds; key expires if heartbeat stops
    REDIS_MAX_CONNECTIONS: int = 10

    # Namespaces Redis keys when several deployments share one Redis
    SERVER_DOMAIN: str = "localhost"

    # When true, join_dm_session must carry a token whose user id matches userId
    SOCKET_AUTH_REQUIRED: bool = False

    MAX_MESSAGE_LENGTH: int = 2000

    # Per-process fixed windows. Messages are limited per user, session
    # creation per client address.
    RATE_LIMIT_ENABLED: bool = True
    MESSAGE_RATE_LIMIT: int = 20
    MESSAGE_RATE_WINDOW: int = 60  # seconds
    SESSION_RATE_LIMIT: int = 100
    SESSION_RATE_WINDOW: int = 15 * 60

    model_config = {"env_file": ".env"}


settings = Settings()
