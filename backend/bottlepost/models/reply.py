import enum

from sqlalchemy import Column, Integer, String, DateTime
from bottlepost.db.database import Base, utcnow


class ReplySender(str, enum.Enum):
    ORIGINAL_SENDER = "original_sender"
    RECIPIENT = "recipient"


class Reply(Base):
    __tablename__ = "replies"

    id = Column(Integer, primary_key=True, index=True)
    message_token = Column(String(36), nullable=False, index=True)
    # Роль относительно исходного сообщения, а не id аккаунта
    sender_type = Column(String(20), nullable=False)
    content = Column(String(1000), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<Reply(id={self.id}, message_token={self.message_token}, sender_type={self.sender_type})>"
