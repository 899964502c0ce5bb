from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from bottlepost.core.config import settings
from bottlepost.core.errors import GatewayError, RedirectError
from bottlepost.db.database import engine, Base
from bottlepost.api import auth, directory, messages, threads, tracks
from bottlepost.realtime.change_feed import change_feed
from bottlepost.realtime.connection_manager import manager
from bottlepost.realtime.endpoints import websocket_notifications_endpoint, websocket_thread_endpoint

# Настройка логирования
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Создание таблиц при старте
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Redis для ленты изменений (необязательно)
    await change_feed.init_redis(settings.REDIS_URL)
    logger.info("🟢 Приложение запущено")

    yield

    # Shutdown
    await change_feed.close()
    logger.info("🔴 Приложение остановлено")

# Создание приложения
app = FastAPI(
    title="Bottlepost API",
    description="Anonymous message-in-a-bottle API",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS: с "*" credentials не передаются, токен идет в заголовке
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(RedirectError)
async def redirect_error_handler(request: Request, exc: RedirectError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "redirect": exc.redirect_to},
        headers=exc.headers,
    )

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.warning(f"🎵 Ошибка поиска треков: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

# Подключение роутеров
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(directory.router, prefix="/api/profiles", tags=["directory"])
app.include_router(messages.router, prefix="/api", tags=["messages"])
app.include_router(threads.router, prefix="/api/threads", tags=["threads"])
app.include_router(tracks.router, prefix="/api/tracks", tags=["tracks"])

# WebSocket эндпоинты
@app.websocket("/ws/notifications")
async def websocket_notifications_endpoint_route(websocket: WebSocket, token: Optional[str] = None):
    await websocket_notifications_endpoint(websocket, token)

@app.websocket("/ws/threads/{token_id}")
async def websocket_thread_endpoint_route(websocket: WebSocket, token_id: str, token: Optional[str] = None):
    await websocket_thread_endpoint(websocket, token_id, token)

# API эндпоинты для мониторинга и отладки
@app.get("/api/debug/websocket-stats")
async def get_websocket_stats():
    """Статистика WebSocket соединений и подписок"""
    return {
        "connections": manager.get_connection_stats(),
        "change_feed": change_feed.get_stats(),
    }

# Корневой эндпоинт
@app.get("/")
async def root():
    return {
        "message": "Welcome to Bottlepost API",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/api/auth",
            "profiles": "/api/profiles",
            "messages": "/api/messages",
            "inbox": "/api/inbox",
            "threads": "/api/threads/{token_id}",
            "track_search": "/api/tracks/search",
            "websocket_notifications": "/ws/notifications",
            "websocket_thread": "/ws/threads/{token_id}",
        }
    }

# Эндпоинт для проверки здоровья
@app.get("/health")
async def health_check():
    return {"status": "healthy", "redis": "connected" if change_feed.redis_client else "disabled"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
