import asyncio
import json
import logging
from typing import Callable, Optional, Tuple

from fastapi import WebSocket, WebSocketDisconnect, status

from bottlepost.core.config import settings
from bottlepost.core.dependencies import CurrentSession, resolve_session
from bottlepost.core.session import SessionEvent, SessionEventKind, session_context
from bottlepost.db.database import AsyncSessionLocal
from bottlepost.models import AuthSession
from bottlepost.realtime.change_feed import change_feed
from bottlepost.realtime.connection_manager import manager
from bottlepost.realtime.notifications import NotificationListener
from bottlepost.schemas.notification import Alert
from bottlepost.services.messages import get_message_by_token, is_party
from bottlepost.services.threads import list_replies, serialize_replies

logger = logging.getLogger(__name__)


async def get_session_ws(token: Optional[str]) -> Optional[CurrentSession]:
    """Проверка токена для WebSocket в собственной сессии БД"""
    async with AsyncSessionLocal() as db:
        return await resolve_session(token, db)


def watch_session(auth_session: AuthSession) -> Tuple[asyncio.Event, Callable[[], None]]:
    """Событие, которое выставляется при выходе из этой сессии или по истечении ее срока"""
    loop = asyncio.get_running_loop()
    ended = asyncio.Event()
    session_id = auth_session.id

    def on_session_event(event: SessionEvent):
        if event.kind is SessionEventKind.SIGNED_OUT and event.session_id == session_id:
            loop.call_soon_threadsafe(ended.set)

    def on_expired():
        logger.info(f"⌛ Сессия {session_id} истекла, поток закрывается")
        ended.set()

    expiry = loop.call_later(auth_session.seconds_left(), on_expired)
    unsubscribe_events = session_context.subscribe(on_session_event)

    def unsubscribe():
        expiry.cancel()
        unsubscribe_events()

    return ended, unsubscribe


async def serve_client(websocket: WebSocket, session_ended: asyncio.Event):
    """
    Цикл чтения клиента: ping/pong и heartbeat.

    Возвращается после завершения сессии (клиенту уходит session_ended),
    при отключении клиента пробрасывает WebSocketDisconnect.
    """
    ended = asyncio.create_task(session_ended.wait())
    receive = None
    try:
        while True:
            receive = asyncio.create_task(websocket.receive_text())
            while True:
                done, _ = await asyncio.wait(
                    {receive, ended},
                    timeout=settings.WS_HEARTBEAT_SECONDS,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if ended in done:
                    receive.cancel()
                    await websocket.send_json({"type": "session_ended", "redirect": "/auth"})
                    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                    return
                if receive in done:
                    break
                await websocket.send_json({"type": "ping"})

            data = receive.result()
            try:
                message_data = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(message_data, dict) and message_data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    finally:
        ended.cancel()
        if receive is not None and not receive.done():
            receive.cancel()


async def websocket_notifications_endpoint(websocket: WebSocket, token: Optional[str]):
    """WebSocket уведомлений: новые сообщения, реакции и ответы текущего пользователя"""
    current = await get_session_ws(token)
    if current is None:
        logger.info("[WS_NOTIFICATIONS] Неавторизованная попытка подключения")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = current.user.id
    await websocket.accept()
    await manager.connect(websocket, user_id, current.session.id, "notifications")
    session_ended, unsubscribe = watch_session(current.session)

    async def emit(alert: Alert):
        await websocket.send_json({"type": "alert", "data": alert.model_dump(mode="json")})

    listener = NotificationListener(change_feed, emit)
    try:
        async with listener.listening(user_id):
            await websocket.send_json({"type": "listening", "user_id": user_id})
            await serve_client(websocket, session_ended)
    except WebSocketDisconnect:
        logger.info(f"[WS_NOTIFICATIONS] Пользователь {user_id} отключился от уведомлений")
    finally:
        unsubscribe()
        await manager.disconnect(websocket)


async def websocket_thread_endpoint(websocket: WebSocket, token_id: str, token: Optional[str]):
    """WebSocket ветки: на каждый новый ответ заново загружаем весь список ответов"""
    current = await get_session_ws(token)
    if current is None:
        logger.info("[WS_THREAD] Неавторизованная попытка подключения")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = current.user.id
    async with AsyncSessionLocal() as db:
        message = await get_message_by_token(db, token_id)
    if message is None or not is_party(message, user_id):
        logger.info(f"[WS_THREAD] Ветка {token_id} не найдена для пользователя {user_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await manager.connect(websocket, user_id, current.session.id, "thread", thread_token=token_id)
    session_ended, unsubscribe = watch_session(current.session)
    subscription = change_feed.subscribe("replies", "message_token", token_id)

    async def push_replies():
        async for event in subscription:
            if event.type != "INSERT":
                continue
            try:
                async with AsyncSessionLocal() as db:
                    replies = await list_replies(db, token_id)
            except Exception as e:
                logger.error(f"[WS_THREAD] Ошибка загрузки ответов ветки {token_id}: {e}")
                await websocket.send_json({"type": "error", "detail": "Failed to load replies"})
                continue
            await websocket.send_json({
                "type": "replies",
                "data": [r.model_dump(mode="json") for r in serialize_replies(replies, user_id, message)],
            })

    pusher = asyncio.create_task(push_replies())
    try:
        await websocket.send_json({"type": "subscribed", "message_token": token_id})
        await serve_client(websocket, session_ended)
    except WebSocketDisconnect:
        logger.info(f"[WS_THREAD] Пользователь {user_id} покинул ветку {token_id}")
    finally:
        pusher.cancel()
        await asyncio.gather(pusher, return_exceptions=True)
        subscription.close()
        unsubscribe()
        await manager.disconnect(websocket)
