from pydantic import BaseModel, EmailStr, constr, field_validator
from datetime import datetime
from typing import Optional

class UserCreate(BaseModel):
    email: EmailStr
    password: constr(min_length=6, max_length=128)
    display_name: constr(strip_whitespace=True, max_length=100)

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Display name is required")
        return value

class Profile(BaseModel):
    id: int
    display_name: str

    class Config:
        from_attributes = True

class UserResponse(Profile):
    email: str
    created_at: Optional[datetime] = None

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime

class SessionResponse(BaseModel):
    session_id: str
    user: Profile
    expires_at: datetime

class TokenData(BaseModel):
    user_id: Optional[int] = None
    session_id: Optional[str] = None
