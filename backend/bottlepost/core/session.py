"""
Контекст сессий процесса.

Единственный объект на процесс: создает сессию при входе, отзывает при выходе
и рассылает события подписчикам (WebSocket потоки закрываются по signed_out).
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bottlepost.core.config import settings
from bottlepost.db.database import utcnow
from bottlepost.models import AuthSession, User

logger = logging.getLogger(__name__)


class SessionEventKind(str, enum.Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionEvent:
    kind: SessionEventKind
    session_id: str
    user_id: int


SessionListener = Callable[[SessionEvent], None]


class SessionContext:
    def __init__(self, lifetime: Optional[timedelta] = None):
        self.lifetime = lifetime or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Подписка на события сессий; возвращает функцию отписки"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"❌ Ошибка подписчика сессий: {e}")

    async def set_on_login(self, db: AsyncSession, user: User) -> AuthSession:
        now = utcnow()
        auth_session = AuthSession(
            id=str(uuid.uuid4()),
            user_id=user.id,
            created_at=now,
            expires_at=now + self.lifetime,
        )
        db.add(auth_session)
        await db.commit()
        await db.refresh(auth_session)

        logger.info(f"🔑 Сессия {auth_session.id} открыта для пользователя {user.id}")
        self._notify(SessionEvent(SessionEventKind.SIGNED_IN, auth_session.id, user.id))
        return auth_session

    async def clear_on_logout(self, db: AsyncSession, session_id: str) -> bool:
        result = await db.execute(select(AuthSession).where(AuthSession.id == session_id))
        auth_session = result.scalar_one_or_none()
        if auth_session is None or auth_session.revoked_at is not None:
            return False

        auth_session.revoked_at = utcnow()
        await db.commit()

        logger.info(f"🔒 Сессия {session_id} закрыта")
        self._notify(SessionEvent(SessionEventKind.SIGNED_OUT, session_id, auth_session.user_id))
        return True

    async def get_current(self, db: AsyncSession, session_id: str) -> Optional[AuthSession]:
        """Активная сессия по id или None (отозвана, истекла, не существует)"""
        result = await db.execute(select(AuthSession).where(AuthSession.id == session_id))
        auth_session = result.scalar_one_or_none()
        if auth_session is None or not auth_session.is_active():
            return None
        return auth_session


# Глобальный экземпляр контекста сессий
session_context = SessionContext()
