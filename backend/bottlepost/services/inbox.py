from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bottlepost.models import Message, Reaction, Reply
from bottlepost.schemas.message import InboxEntry, InboxResponse
from bottlepost.schemas.reaction import ReactionResponse


@dataclass
class InboxView:
    """Полученные и отправленные сообщения с индексами реакций и ответов по token_id"""
    user_id: int
    received: List[Message] = field(default_factory=list)
    sent: List[Message] = field(default_factory=list)
    reactions: Dict[str, List[Reaction]] = field(default_factory=dict)
    reply_counts: Dict[str, int] = field(default_factory=dict)

    def reactions_for(self, token_id: str) -> List[Reaction]:
        return self.reactions.get(token_id, [])

    def reaction_counts(self, token_id: str) -> Dict[str, int]:
        return dict(Counter(r.reaction_type for r in self.reactions_for(token_id)))

    def reacted_types(self, token_id: str) -> List[str]:
        return sorted({r.reaction_type for r in self.reactions_for(token_id) if r.reactor_id == self.user_id})

    def entry(self, message: Message) -> InboxEntry:
        token_id = message.token_id
        return InboxEntry.model_validate(message).model_copy(update={
            "reactions": [ReactionResponse.model_validate(r) for r in self.reactions_for(token_id)],
            "reaction_counts": self.reaction_counts(token_id),
            "reply_count": self.reply_counts.get(token_id, 0),
            "reacted_types": self.reacted_types(token_id),
        })

    def to_response(self) -> InboxResponse:
        return InboxResponse(
            received=[self.entry(m) for m in self.received],
            sent=[self.entry(m) for m in self.sent],
        )


async def load_inbox(db: AsyncSession, user_id: int) -> InboxView:
    """
    Загрузка входящих и отправленных.

    Реакции и счетчики ответов берутся одним IN-запросом на таблицу по всем
    token_id сразу, без запроса на каждое сообщение.
    """
    view = InboxView(user_id=user_id)

    result = await db.execute(
        select(Message)
        .where(Message.recipient_id == user_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    view.received = list(result.scalars().all())

    result = await db.execute(
        select(Message)
        .where(Message.sender_id == user_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    view.sent = list(result.scalars().all())

    tokens = list({m.token_id for m in view.received + view.sent})
    if not tokens:
        return view

    result = await db.execute(
        select(Reaction)
        .where(Reaction.message_token.in_(tokens))
        .order_by(Reaction.id)
    )
    reactions_by_token: Dict[str, List[Reaction]] = defaultdict(list)
    for reaction in result.scalars().all():
        reactions_by_token[reaction.message_token].append(reaction)
    view.reactions = dict(reactions_by_token)

    result = await db.execute(
        select(Reply.message_token, func.count(Reply.id))
        .where(Reply.message_token.in_(tokens))
        .group_by(Reply.message_token)
    )
    view.reply_counts = {token: count for token, count in result.all()}

    return view
