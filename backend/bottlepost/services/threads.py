import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bottlepost.models import Message, Reply, ReplySender
from bottlepost.realtime.change_feed import change_feed, record_from_row
from bottlepost.schemas.message import Message as MessageSchema
from bottlepost.schemas.reply import Reply as ReplySchema, ThreadResponse

logger = logging.getLogger(__name__)


def role_for(viewer_id: int, message: Message) -> ReplySender:
    """Роль автора ответа относительно исходного сообщения"""
    if viewer_id == message.sender_id:
        return ReplySender.ORIGINAL_SENDER
    return ReplySender.RECIPIENT


def is_own_reply(sender_type, viewer_id: int, message: Message) -> bool:
    sender_type = ReplySender(sender_type)
    if sender_type is ReplySender.ORIGINAL_SENDER:
        return viewer_id == message.sender_id
    return viewer_id == message.recipient_id


async def list_replies(db: AsyncSession, token_id: str) -> List[Reply]:
    result = await db.execute(
        select(Reply)
        .where(Reply.message_token == token_id)
        .order_by(Reply.created_at.asc(), Reply.id.asc())
    )
    return list(result.scalars().all())


def serialize_replies(replies: List[Reply], viewer_id: int, message: Message) -> List[ReplySchema]:
    return [
        ReplySchema.model_validate(reply).model_copy(
            update={"is_mine": is_own_reply(reply.sender_type, viewer_id, message)}
        )
        for reply in replies
    ]


async def load_thread(db: AsyncSession, message: Message, viewer_id: int) -> ThreadResponse:
    replies = await list_replies(db, message.token_id)
    return ThreadResponse(
        message=MessageSchema.model_validate(message),
        viewer_role=role_for(viewer_id, message),
        replies=serialize_replies(replies, viewer_id, message),
    )


async def append_reply(db: AsyncSession, message: Message, viewer_id: int, content: str) -> Reply:
    reply = Reply(
        message_token=message.token_id,
        sender_type=role_for(viewer_id, message).value,
        content=content,
    )
    db.add(reply)
    await db.commit()
    await db.refresh(reply)
    logger.info(f"💬 Ответ {reply.id} в ветке {message.token_id} ({reply.sender_type})")

    await change_feed.publish("replies", record_from_row(reply))
    return reply
