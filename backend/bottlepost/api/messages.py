from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from bottlepost.core.dependencies import get_current_user
from bottlepost.core.errors import RedirectError
from bottlepost.db.database import get_db
from bottlepost.models import User
from bottlepost.schemas.message import MessageCreate, Message as MessageSchema, InboxResponse
from bottlepost.schemas.reaction import ReactionCreate, ReactionResponse
from bottlepost.services import messages as message_service
from bottlepost.services.inbox import load_inbox

router = APIRouter()

@router.post("/messages", response_model=MessageSchema, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Отправить бутылку: псевдоним, текст, настроение и, по желанию, трек"""
    if message_data.recipient_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot send a bottle to yourself"
        )

    result = await db.execute(select(User).where(User.id == message_data.recipient_id))
    recipient = result.scalar_one_or_none()
    if recipient is None or not recipient.is_active:
        raise RedirectError(status.HTTP_404_NOT_FOUND, "Recipient not found", redirect_to="/")

    return await message_service.create_message(db, current_user, message_data)

@router.get("/inbox", response_model=InboxResponse)
async def get_inbox(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Полученные и отправленные сообщения с реакциями и числом ответов"""
    view = await load_inbox(db, current_user.id)
    return view.to_response()

@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление сообщения любой из сторон"""
    message = await message_service.get_message_by_id(db, message_id)
    if message is None or not message_service.is_party(message, current_user.id):
        raise HTTPException(status_code=404, detail="Message not found")

    await message_service.delete_message(db, message)
    return {"message": "Message deleted"}

@router.post(
    "/messages/{token_id}/reactions",
    response_model=ReactionResponse,
    status_code=status.HTTP_201_CREATED
)
async def react_to_message(
    token_id: str,
    reaction_data: ReactionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Поставить реакцию; повторный тип от того же пользователя - 409"""
    message = await message_service.get_message_by_token(db, token_id)
    if message is None or not message_service.is_party(message, current_user.id):
        raise HTTPException(status_code=404, detail="Message not found")

    try:
        return await message_service.add_reaction(db, message, current_user, reaction_data.reaction_type)
    except message_service.ReactionExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already sent this reaction"
        )
