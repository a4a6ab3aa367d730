from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shadowtalk.database import Base


class PrivateMessage(Base):
    __tablename__ = "private_messages"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(String(2000), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    # Soft delete is per participant; the row is fully deleted once both sides delete
    deleted_by_sender = Column(Boolean, default=False)
    deleted_by_receiver = Column(Boolean, default=False)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def delete_for(self, user_id: int) -> None:
        if user_id == self.sender_id:
            self.deleted_by_sender = True
        if user_id == self.receiver_id:
            self.deleted_by_receiver = True
        if self.deleted_by_sender and self.deleted_by_receiver:
            self.is_deleted = True
