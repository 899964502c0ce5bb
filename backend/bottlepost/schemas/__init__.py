from .user import UserCreate, UserResponse, Profile, Token, SessionResponse
from .message import MessageCreate, Message, InboxEntry, InboxResponse, TrackAttachment
from .reaction import ReactionCreate, ReactionResponse
from .reply import ReplyCreate, Reply, ThreadResponse
from .track import TrackSearchRequest, Track, TrackSearchResponse
from .notification import Alert

__all__ = [
    "UserCreate", "UserResponse", "Profile", "Token", "SessionResponse",
    "MessageCreate", "Message", "InboxEntry", "InboxResponse", "TrackAttachment",
    "ReactionCreate", "ReactionResponse",
    "ReplyCreate", "Reply", "ThreadResponse",
    "TrackSearchRequest", "Track", "TrackSearchResponse",
    "Alert",
]
