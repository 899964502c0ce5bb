import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bottlepost.db.database import AsyncSessionLocal
from bottlepost.models import Message, Reaction, ReactionType, User
from bottlepost.realtime.change_feed import change_feed, record_from_row
from bottlepost.schemas.message import MessageCreate

logger = logging.getLogger(__name__)


class ReactionExists(Exception):
    """Пользователь уже ставил этот тип реакции на сообщение"""


@dataclass(frozen=True)
class MessageParties:
    token_id: str
    sender_id: int
    recipient_id: int

    def involves(self, user_id) -> bool:
        return str(user_id) in (str(self.sender_id), str(self.recipient_id))


def is_party(message: Message, user_id: int) -> bool:
    return user_id in (message.sender_id, message.recipient_id)


async def create_message(db: AsyncSession, sender: User, data: MessageCreate) -> Message:
    track = data.track
    message = Message(
        sender_id=sender.id,
        recipient_id=data.recipient_id,
        sender_alias=data.sender_alias,
        content=data.content,
        mood_emoji=data.mood_emoji,
        spotify_track_id=track.id if track else None,
        spotify_track_name=track.name if track else None,
        spotify_artist=track.artist if track else None,
        spotify_album_art=(track.album_art or None) if track else None,
        spotify_uri=track.uri if track else None,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)
    logger.info(f"🌊 Сообщение {message.token_id} отправлено пользователю {message.recipient_id}")

    await change_feed.publish("messages", record_from_row(message))
    return message


async def get_message_by_token(db: AsyncSession, token_id: str) -> Optional[Message]:
    result = await db.execute(select(Message).where(Message.token_id == token_id))
    return result.scalar_one_or_none()


async def get_message_by_id(db: AsyncSession, message_id: int) -> Optional[Message]:
    result = await db.execute(select(Message).where(Message.id == message_id))
    return result.scalar_one_or_none()


async def delete_message(db: AsyncSession, message: Message):
    """Удаление по id без каскада: реакции и ответы остаются сиротами"""
    token_id = message.token_id
    await db.delete(message)
    await db.commit()
    logger.info(f"🗑️ Сообщение {token_id} удалено")

    await change_feed.publish("messages", {"id": message.id, "token_id": token_id}, event_type="DELETE")


async def add_reaction(
    db: AsyncSession,
    message: Message,
    reactor: User,
    reaction_type: ReactionType
) -> Reaction:
    reaction = Reaction(
        message_token=message.token_id,
        reaction_type=ReactionType(reaction_type).value,
        reactor_id=reactor.id,
    )
    db.add(reaction)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ReactionExists(reaction.reaction_type)
    await db.refresh(reaction)

    # reactor_id остается во внутренней ленте, в уведомления он не попадает
    await change_feed.publish("reactions", record_from_row(reaction))
    return reaction


async def find_message_parties(db: AsyncSession, token_id: str) -> Optional[MessageParties]:
    result = await db.execute(
        select(Message.token_id, Message.sender_id, Message.recipient_id)
        .where(Message.token_id == token_id)
    )
    row = result.first()
    if row is None:
        return None
    return MessageParties(token_id=row.token_id, sender_id=row.sender_id, recipient_id=row.recipient_id)


async def lookup_message_parties(token_id: str) -> Optional[MessageParties]:
    """Дозапрос родительского сообщения для слушателя уведомлений (своя сессия БД)"""
    async with AsyncSessionLocal() as db:
        return await find_message_parties(db, token_id)
