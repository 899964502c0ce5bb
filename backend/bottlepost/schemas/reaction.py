from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from bottlepost.models.reaction import ReactionType

class ReactionCreate(BaseModel):
    reaction_type: ReactionType

class ReactionResponse(BaseModel):
    id: int
    message_token: str
    reaction_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
