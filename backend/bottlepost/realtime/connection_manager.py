from typing import Dict, List, Optional
from fastapi import WebSocket
import asyncio
import logging

# Настройка логирования
logger = logging.getLogger(__name__)

class ConnectionManager:
    def __init__(self):
        # Активные WebSocket соединения по user_id
        self.active_connections: Dict[int, List[WebSocket]] = {}
        # Метаданные: user_id, session_id, тип потока, токен ветки
        self.connection_metadata: Dict[WebSocket, Dict] = {}

    async def connect(
        self,
        websocket: WebSocket,
        user_id: int,
        session_id: str,
        kind: str,
        thread_token: Optional[str] = None
    ):
        """Регистрация уже принятого WebSocket соединения"""
        self.connection_metadata[websocket] = {
            'user_id': user_id,
            'session_id': session_id,
            'type': kind,
            'thread_token': thread_token,
            'connected_at': asyncio.get_running_loop().time(),
        }

        if user_id not in self.active_connections:
            self.active_connections[user_id] = []
        self.active_connections[user_id].append(websocket)

        logger.info(f"🔗 WebSocket подключен: user_id={user_id}, тип={kind}"
                    + (f", ветка={thread_token}" if thread_token else ""))
        self._log_connection_stats()

    async def disconnect(self, websocket: WebSocket):
        metadata = self.connection_metadata.pop(websocket, None)
        if metadata is None:
            logger.warning("⚠️ Не удалось определить user_id для отключения WebSocket")
            return

        user_id = metadata['user_id']
        connections = self.active_connections.get(user_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(user_id, None)
            logger.debug(f"🔌 Удален пользователь {user_id} из активных соединений")

        logger.info(f"🔌 Отключение WebSocket: user_id={user_id}, тип={metadata['type']}")
        self._log_connection_stats()

    def _log_connection_stats(self):
        total_connections = sum(len(connections) for connections in self.active_connections.values())
        logger.info(f"📊 Статистика соединений: пользователей={len(self.active_connections)}, "
                    f"соединений={total_connections}")

    def get_connection_stats(self) -> dict:
        """Получение статистики соединений для API"""
        connections_by_type = {'notifications': 0, 'thread': 0}
        for metadata in self.connection_metadata.values():
            connections_by_type[metadata['type']] = connections_by_type.get(metadata['type'], 0) + 1

        return {
            'total_users': len(self.active_connections),
            'total_connections': len(self.connection_metadata),
            'connections_by_type': connections_by_type,
        }

# Глобальный экземпляр менеджера
manager = ConnectionManager()
