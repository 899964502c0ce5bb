from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from bottlepost.db.database import Base, utcnow


def _aware(dt: datetime) -> datetime:
    # SQLite возвращает naive datetime, считаем что это UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")

    def is_active(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.revoked_at is None and _aware(self.expires_at) > now

    def seconds_left(self, now: datetime | None = None) -> float:
        now = now or utcnow()
        return max((_aware(self.expires_at) - now).total_seconds(), 0.0)

    def __repr__(self):
        return f"<AuthSession(id={self.id}, user_id={self.user_id}, revoked={self.revoked_at is not None})>"
