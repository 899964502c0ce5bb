from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bottlepost.core.dependencies import get_current_user
from bottlepost.core.errors import RedirectError
from bottlepost.db.database import get_db
from bottlepost.models import Message, User
from bottlepost.schemas.reply import ReplyCreate, Reply as ReplySchema, ThreadResponse
from bottlepost.services.messages import get_message_by_token, is_party
from bottlepost.services.threads import append_reply, is_own_reply, load_thread

router = APIRouter()


async def get_thread_message(db: AsyncSession, token_id: str, user: User) -> Message:
    # Чужую ветку не отличаем от несуществующей
    message = await get_message_by_token(db, token_id)
    if message is None or not is_party(message, user.id):
        raise RedirectError(status.HTTP_404_NOT_FOUND, "Conversation not found", redirect_to="/inbox")
    return message


@router.get("/{token_id}", response_model=ThreadResponse)
async def get_thread(
    token_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Сообщение и все ответы по возрастанию времени"""
    message = await get_thread_message(db, token_id, current_user)
    return await load_thread(db, message, current_user.id)


@router.post("/{token_id}/replies", response_model=ReplySchema, status_code=status.HTTP_201_CREATED)
async def send_reply(
    token_id: str,
    reply_data: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    message = await get_thread_message(db, token_id, current_user)
    reply = await append_reply(db, message, current_user.id, reply_data.content)
    return ReplySchema.model_validate(reply).model_copy(
        update={"is_mine": is_own_reply(reply.sender_type, current_user.id, message)}
    )
