from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from bottlepost.core.config import settings


def _async_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _engine_options(url: str) -> dict:
    # SQLite открываем без пула: соединения не переживают смену event loop
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_size": 20,              # Основной пул
        "max_overflow": 30,           # Дополнительные соединения
        "pool_timeout": 30,           # Таймаут ожидания соединения 30 сек
        "pool_recycle": 1800,         # Переиспользуем соединения каждые 30 мин
        "pool_pre_ping": True,        # Проверяем соединения перед использованием
    }


DATABASE_URL = _async_url(settings.DATABASE_URL)

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_options(DATABASE_URL),
)

# Создаем асинхронную сессию
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Базовый класс для моделей
Base = declarative_base()

# Dependency для получения сессии БД
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def utcnow() -> datetime:
    """Текущее время в UTC (значение по умолчанию для created_at)"""
    return datetime.now(timezone.utc)
