from pydantic import BaseModel
from typing import Literal, Optional

class Alert(BaseModel):
    """Одноразовое уведомление для клиента (toast), нигде не сохраняется"""
    type: Literal["message", "reaction", "reply"]
    title: str
    description: str
    message_token: Optional[str] = None
    reaction_type: Optional[str] = None
