from pydantic import BaseModel, constr, field_serializer, field_validator
from datetime import datetime
from typing import List

from bottlepost.models.reply import ReplySender
from bottlepost.schemas.message import Message, as_utc_isoformat

class ReplyCreate(BaseModel):
    content: constr(strip_whitespace=True, max_length=1000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Reply cannot be empty")
        return value

class Reply(BaseModel):
    id: int
    message_token: str
    sender_type: ReplySender
    content: str
    created_at: datetime
    is_mine: bool = False

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str:
        return as_utc_isoformat(dt)

    class Config:
        from_attributes = True

class ThreadResponse(BaseModel):
    message: Message
    viewer_role: ReplySender
    replies: List[Reply]
