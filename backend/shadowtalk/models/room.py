from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shadowtalk.database import Base

TOPICS = (
    "General",
    "Technology",
    "Gaming",
    "Music",
    "Movies",
    "Sports",
    "Art",
    "Books",
    "Food",
    "Travel",
    "Mental Health",
    "Relationships",
    "Career",
    "Hobbies",
    "Other",
)

# Durable room membership. Realtime channel subscription is separate and lives
# in memory only (see websocket/rooms.py).
room_members = Table(
    "room_members",
    Base.metadata,
    Column("room_id", Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    slug = Column(String(64), unique=True, index=True, nullable=False)
    description = Column(String(200), default="")
    topic = Column(String(32), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    message_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True)
    last_activity = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    members = relationship("User", secondary=room_members, back_populates="rooms")
    messages = relationship("Message", back_populates="room", cascade="all, delete-orphan")

    @property
    def member_count(self) -> int:
        return len(self.members)

    def has_member(self, user_id: int) -> bool:
        return any(m.id == user_id for m in self.members)
