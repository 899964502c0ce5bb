from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from bottlepost.db.database import get_db
from bottlepost.core.dependencies import get_current_user
from bottlepost.core.errors import RedirectError
from bottlepost.models import User
from bottlepost.schemas.user import Profile

router = APIRouter()

@router.get("", response_model=List[Profile])
async def list_recipients(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Все профили, кроме своего, по имени"""
    result = await db.execute(
        select(User)
        .where(User.id != current_user.id, User.is_active == True)
        .order_by(User.display_name, User.id)
    )
    return result.scalars().all()

@router.get("/{profile_id}", response_model=Profile)
async def get_recipient(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Профиль получателя для формы отправки"""
    result = await db.execute(select(User).where(User.id == profile_id))
    profile = result.scalar_one_or_none()
    if profile is None or not profile.is_active:
        raise RedirectError(status.HTTP_404_NOT_FOUND, "Recipient not found", redirect_to="/")
    return profile
