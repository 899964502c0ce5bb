from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from bottlepost.db.database import get_db
from bottlepost.core.errors import SessionRequired
from bottlepost.core.security import decode_access_token
from bottlepost.core.session import session_context
from bottlepost.models import AuthSession, User
from bottlepost.schemas.user import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass
class CurrentSession:
    session: AuthSession
    user: User


def read_token(token: Optional[str]) -> Optional[TokenData]:
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    session_id = payload.get("sid")
    if user_id is None or session_id is None:
        return None
    try:
        return TokenData(user_id=int(user_id), session_id=session_id)
    except ValueError:
        return None


async def resolve_session(token: Optional[str], db: AsyncSession) -> Optional[CurrentSession]:
    """Проверка токена и серверной сессии; используется и в HTTP, и в WebSocket"""
    token_data = read_token(token)
    if token_data is None:
        return None

    auth_session = await session_context.get_current(db, token_data.session_id)
    if auth_session is None or auth_session.user_id != token_data.user_id:
        return None

    result = await db.execute(select(User).where(User.id == token_data.user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None

    return CurrentSession(session=auth_session, user=user)


async def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> CurrentSession:
    """Нет активной сессии - 401 и переход на /auth"""
    current = await resolve_session(token, db)
    if current is None:
        raise SessionRequired()
    return current


async def get_current_user(
    current: CurrentSession = Depends(get_current_session)
) -> User:
    return current.user
