import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from bottlepost.db.database import Base, utcnow


def new_token_id() -> str:
    return str(uuid.uuid4())


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    # Публичный идентификатор: по нему адресуются реакции и ответы
    token_id = Column(String(36), unique=True, index=True, nullable=False, default=new_token_id)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    sender_alias = Column(String(50), nullable=False)
    content = Column(String(2000), nullable=False)
    mood_emoji = Column(String(16), nullable=False)

    # Прикрепленный трек (необязательно)
    spotify_track_id = Column(String, nullable=True)
    spotify_track_name = Column(String, nullable=True)
    spotify_artist = Column(String, nullable=True)
    spotify_album_art = Column(String, nullable=True)
    spotify_uri = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    def __repr__(self):
        return f"<Message(id={self.id}, token_id={self.token_id}, recipient_id={self.recipient_id})>"
