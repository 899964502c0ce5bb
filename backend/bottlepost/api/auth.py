from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from bottlepost.db.database import get_db
from bottlepost.models.user import User
from bottlepost.schemas.user import UserCreate, UserResponse, Token, SessionResponse, Profile
from bottlepost.core.security import verify_password, get_password_hash, create_access_token
from bottlepost.core.dependencies import CurrentSession, get_current_session, get_current_user
from bottlepost.core.session import session_context

router = APIRouter()

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Регистрация нового пользователя; профиль создается вместе с аккаунтом"""
    email = user_data.email.lower()
    result = await db.execute(select(User).where(func.lower(User.email) == email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    new_user = User(
        email=email,
        display_name=user_data.display_name,
        hashed_password=get_password_hash(user_data.password)
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    return new_user

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """Вход по email (поле username формы) и паролю"""
    result = await db.execute(
        select(User).where(func.lower(User.email) == form_data.username.strip().lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    auth_session = await session_context.set_on_login(db, user)
    access_token = create_access_token(
        data={"sub": str(user.id), "sid": auth_session.id},
        expires_at=auth_session.expires_at,
    )

    return {"access_token": access_token, "token_type": "bearer", "expires_at": auth_session.expires_at}

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Выход: сессия отзывается, открытые WebSocket потоки закрываются"""
    await session_context.clear_on_logout(db, current.session.id)

@router.get("/session", response_model=SessionResponse)
async def get_session(
    current: CurrentSession = Depends(get_current_session)
):
    """Текущая сессия (аналог getSession на клиенте)"""
    return SessionResponse(
        session_id=current.session.id,
        user=Profile.model_validate(current.user),
        expires_at=current.session.expires_at,
    )

@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """Получение информации о текущем пользователе"""
    return current_user
