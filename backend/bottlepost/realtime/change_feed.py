"""
Лента изменений строк (INSERT/DELETE) для подписчиков реального времени.

Слой хранения публикует событие после commit. С Redis событие уходит в канал
changes:<table>, а фоновая задача раздает его локальным подпискам, поэтому
несколько процессов видят одни и те же события. Без Redis раздаем локально.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "changes:"


@dataclass
class ChangeEvent:
    table: str
    type: str
    record: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"table": self.table, "type": self.type, "record": self.record})

    @classmethod
    def from_json(cls, raw) -> "ChangeEvent":
        if isinstance(raw, bytes):
            raw = raw.decode()
        data = json.loads(raw)
        return cls(table=data["table"], type=data["type"], record=data.get("record") or {})


def record_from_row(row) -> Dict[str, Any]:
    """Строка ORM -> JSON-совместимый dict по колонкам таблицы"""
    record = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        if isinstance(value, datetime):
            value = value.isoformat()
        record[column.name] = value
    return record


class Subscription:
    """Очередь событий одной таблицы с необязательным фильтром column == value"""

    def __init__(self, feed: "ChangeFeed", table: str, column: Optional[str] = None, value: Any = None):
        self.feed = feed
        self.table = table
        self.column = column
        self.value = value
        self.closed = False
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.column is None:
            return True
        # Сравниваем как текст, как фильтр eq в REST-запросах
        return str(event.record.get(self.column)) == str(self.value)

    def deliver(self, event: ChangeEvent):
        if self.closed:
            return
        # Публикация может прийти из другого потока/цикла событий
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            # Цикл подписчика уже закрыт
            logger.warning(f"⚠️ Подписка на {self.table} потеряла event loop, отключаем")
            self.close()

    async def get(self) -> ChangeEvent:
        return await self._queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    def close(self):
        self.closed = True
        self.feed.unsubscribe(self)


class ChangeFeed:
    def __init__(self):
        self.subscriptions: List[Subscription] = []
        self.redis_client = None
        self._relay_task: Optional[asyncio.Task] = None

    async def init_redis(self, url: str):
        """Подключение Redis для pub/sub; при ошибке работаем локально"""
        if not url:
            logger.info("ℹ️ REDIS_URL не задан, события раздаются локально")
            return
        try:
            self.redis_client = redis.from_url(url)
            await self.redis_client.ping()
            self._relay_task = asyncio.create_task(self._relay())
            logger.info("✅ Redis подключен успешно")
        except Exception as e:
            logger.error(f"❌ Ошибка подключения Redis: {e}")
            self.redis_client = None

    async def close(self):
        if self._relay_task:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

    def subscribe(self, table: str, column: Optional[str] = None, value: Any = None) -> Subscription:
        subscription = Subscription(self, table, column, value)
        self.subscriptions.append(subscription)
        logger.debug(f"📡 Подписка на {table} ({column}={value}), всего: {len(self.subscriptions)}")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)

    async def publish(self, table: str, record: Dict[str, Any], event_type: str = "INSERT"):
        event = ChangeEvent(table=table, type=event_type, record=record)
        if self.redis_client:
            try:
                await self.redis_client.publish(f"{CHANNEL_PREFIX}{table}", event.to_json())
                return
            except Exception as e:
                logger.error(f"❌ Ошибка отправки в Redis, раздаем локально: {e}")
        self.dispatch(event)

    def dispatch(self, event: ChangeEvent) -> int:
        delivered = 0
        for subscription in list(self.subscriptions):
            if subscription.matches(event):
                subscription.deliver(event)
                delivered += 1
        logger.debug(f"📤 Событие {event.type} {event.table} доставлено {delivered} подпискам")
        return delivered

    async def _relay(self):
        pubsub = self.redis_client.pubsub()
        await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
        try:
            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                try:
                    self.dispatch(ChangeEvent.from_json(message["data"]))
                except (ValueError, KeyError) as e:
                    logger.error(f"❌ Ошибка обработки Redis сообщения: {e}")
        finally:
            await pubsub.aclose()

    def get_stats(self) -> dict:
        by_table: Dict[str, int] = {}
        for subscription in self.subscriptions:
            by_table[subscription.table] = by_table.get(subscription.table, 0) + 1
        return {
            "subscriptions": len(self.subscriptions),
            "by_table": by_table,
            "redis_connected": self.redis_client is not None,
        }


# Глобальный экземпляр ленты изменений
change_feed = ChangeFeed()
