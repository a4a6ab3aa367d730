from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shadowtalk.database import Base


class User(Base):
    """A ShadowID: a persistent pseudonymous identity.

    There is no username or password. The secret ``session_id`` is embedded in
    the issued JWT and must match on every authenticated request.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    anonymous_id = Column(String(32), unique=True, index=True, nullable=False)
    session_id = Column(String(64), unique=True, nullable=False)
    nickname = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_seen = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    messages = relationship("Message", back_populates="sender")
    rooms = relationship("Room", secondary="room_members", back_populates="members")
