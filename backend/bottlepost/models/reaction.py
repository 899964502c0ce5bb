import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from bottlepost.db.database import Base, utcnow


class ReactionType(str, enum.Enum):
    LIKE = "like"
    FUNNY = "funny"
    TOUCHING = "touching"
    SURPRISING = "surprising"
    APPRECIATED = "appreciated"
    INTRIGUING = "intriguing"


class Reaction(Base):
    __tablename__ = "reactions"

    id = Column(Integer, primary_key=True, index=True)
    # Ссылка на token_id сообщения без внешнего ключа: после удаления сообщения строки остаются
    message_token = Column(String(36), nullable=False, index=True)
    reaction_type = Column(String(20), nullable=False)
    reactor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Один тип реакции от одного пользователя на сообщение
    __table_args__ = (
        UniqueConstraint("message_token", "reactor_id", "reaction_type", name="unique_reactor_token_type"),
    )

    def __repr__(self):
        return f"<Reaction(id={self.id}, type={self.reaction_type}, message_token={self.message_token})>"
