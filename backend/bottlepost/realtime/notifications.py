"""
Слушатель уведомлений пользователя.

Три подписки на ленту изменений живут вместе, пока известен id пользователя:

- messages: фильтр recipient_id == user, каждое событие сразу дает уведомление;
- reactions: без фильтра, дозапрос родительского сообщения по токену,
  уведомляем только отправителя и не о его собственных реакциях;
- replies: без фильтра, дозапрос, уведомляем обе стороны (и автора ответа тоже).

Если родительское сообщение не найдено (удалено параллельно), событие молча
отбрасывается. Ошибка дозапроса логируется и тоже отбрасывается.
"""

import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Optional

from bottlepost.realtime.change_feed import ChangeEvent, ChangeFeed, Subscription
from bottlepost.schemas.notification import Alert
from bottlepost.services.messages import MessageParties, lookup_message_parties

logger = logging.getLogger(__name__)

Emit = Callable[[Alert], Awaitable[None]]
Lookup = Callable[[str], Awaitable[Optional[MessageParties]]]

REACTION_LABELS = {
    "like": "liked",
    "funny": "laughed at",
    "touching": "was touched by",
    "surprising": "was surprised by",
    "appreciated": "appreciated",
    "intriguing": "was intrigued by",
}


class Relevance(str, enum.Enum):
    RELEVANT = "relevant"
    IRRELEVANT = "irrelevant"
    NOT_FOUND = "not_found"


def reaction_relevance(parties: Optional[MessageParties], user_id) -> Relevance:
    if parties is None:
        return Relevance.NOT_FOUND
    if str(parties.sender_id) == str(user_id):
        return Relevance.RELEVANT
    return Relevance.IRRELEVANT


def reply_relevance(parties: Optional[MessageParties], user_id) -> Relevance:
    if parties is None:
        return Relevance.NOT_FOUND
    return Relevance.RELEVANT if parties.involves(user_id) else Relevance.IRRELEVANT


def message_alert(record: dict) -> Alert:
    return Alert(
        type="message",
        title="💌 New message received!",
        description="Someone sent you a bottle",
        message_token=record.get("token_id"),
    )


def reaction_alert(record: dict) -> Alert:
    reaction_type = record.get("reaction_type")
    label = REACTION_LABELS.get(reaction_type, "reacted to")
    return Alert(
        type="reaction",
        title=f"❤️ Someone {label} your bottle!",
        description="Your message got some attention",
        message_token=record.get("message_token"),
        reaction_type=reaction_type,
    )


def reply_alert(record: dict) -> Alert:
    return Alert(
        type="reply",
        title="💬 New reply!",
        description="Someone replied to your message",
        message_token=record.get("message_token"),
    )


class NotificationListener:
    def __init__(self, feed: ChangeFeed, emit: Emit, lookup: Lookup = lookup_message_parties):
        self.feed = feed
        self.emit = emit
        self.lookup = lookup
        self.user_id = None
        self._subscriptions: List[Subscription] = []
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self, user_id) -> bool:
        """Открывает три подписки; без id пользователя ничего не делает"""
        if not user_id:
            logger.debug("🔕 Нет id пользователя, уведомления не подключены")
            return False
        if self.running:
            await self.stop()

        self.user_id = user_id
        streams = [
            (self.feed.subscribe("messages", "recipient_id", user_id), self._on_message),
            (self.feed.subscribe("reactions"), self._on_reaction),
            (self.feed.subscribe("replies"), self._on_reply),
        ]
        for subscription, handler in streams:
            self._subscriptions.append(subscription)
            self._tasks.append(asyncio.create_task(self._watch(subscription, handler)))

        logger.info(f"🔔 Уведомления подключены для пользователя {user_id}")
        return True

    async def stop(self):
        """Снимает все три подписки вместе"""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        for subscription in self._subscriptions:
            subscription.close()

        if self._tasks:
            logger.info(f"🔕 Уведомления отключены для пользователя {self.user_id}")
        self._tasks = []
        self._subscriptions = []

    @asynccontextmanager
    async def listening(self, user_id):
        await self.start(user_id)
        try:
            yield self
        finally:
            await self.stop()

    async def _watch(self, subscription: Subscription, handler):
        async for event in subscription:
            if event.type != "INSERT":
                continue
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"❌ Ошибка обработки события {event.table}")

    async def _enrich(self, event: ChangeEvent, relevance) -> Relevance:
        token = event.record.get("message_token")
        try:
            parties = await self.lookup(token)
        except Exception as e:
            logger.warning(f"⚠️ Дозапрос сообщения {token} не удался, событие пропущено: {e}")
            return Relevance.NOT_FOUND
        outcome = relevance(parties, self.user_id)
        if outcome is Relevance.NOT_FOUND:
            logger.debug(f"🔍 Сообщение {token} не найдено, событие {event.table} пропущено")
        return outcome

    async def _on_message(self, event: ChangeEvent):
        await self.emit(message_alert(event.record))

    async def _on_reaction(self, event: ChangeEvent):
        # Своя реакция на свое же сообщение не уведомляет
        if str(event.record.get("reactor_id")) == str(self.user_id):
            return
        if await self._enrich(event, reaction_relevance) is Relevance.RELEVANT:
            await self.emit(reaction_alert(event.record))

    async def _on_reply(self, event: ChangeEvent):
        if await self._enrich(event, reply_relevance) is Relevance.RELEVANT:
            await self.emit(reply_alert(event.record))
