from .user import User
from .session import AuthSession
from .message import Message
from .reaction import Reaction, ReactionType
from .reply import Reply, ReplySender

__all__ = [
    "User",
    "AuthSession",
    "Message",
    "Reaction",
    "ReactionType",
    "Reply",
    "ReplySender",
]
