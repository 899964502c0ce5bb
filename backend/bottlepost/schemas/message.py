from pydantic import BaseModel, computed_field, constr, field_serializer, field_validator
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bottlepost.schemas.reaction import ReactionResponse

MOOD_EMOJIS = ["💙", "💌", "🌊", "✨", "🫶", "💭", "🌸", "🦋"]
DEFAULT_MOOD_EMOJI = MOOD_EMOJIS[0]


def as_utc_isoformat(dt: datetime) -> str:
    # Если timezone не указан, считаем что это UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def spotify_embed_url(uri: Optional[str]) -> Optional[str]:
    """spotify:track:<id> -> ссылка на встраиваемый плеер"""
    if not uri:
        return None
    parts = uri.split(":")
    if len(parts) < 3 or not parts[2]:
        return None
    return f"https://open.spotify.com/embed/track/{parts[2]}?utm_source=generator"


class TrackAttachment(BaseModel):
    id: str
    name: str
    artist: str
    album_art: str = ""
    uri: str


class MessageCreate(BaseModel):
    recipient_id: int
    sender_alias: constr(strip_whitespace=True, max_length=50)
    content: constr(strip_whitespace=True, max_length=2000)
    mood_emoji: str = DEFAULT_MOOD_EMOJI
    track: Optional[TrackAttachment] = None

    @field_validator("sender_alias")
    @classmethod
    def alias_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter an alias")
        return value

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please write a message")
        return value

    @field_validator("mood_emoji")
    @classmethod
    def known_mood(cls, value: str) -> str:
        if value not in MOOD_EMOJIS:
            raise ValueError(f"Mood must be one of {' '.join(MOOD_EMOJIS)}")
        return value


class Message(BaseModel):
    """Сообщение без sender_id: отправитель известен получателю только по псевдониму"""
    id: int
    token_id: str
    recipient_id: int
    sender_alias: str
    content: str
    mood_emoji: str
    spotify_track_id: Optional[str] = None
    spotify_track_name: Optional[str] = None
    spotify_artist: Optional[str] = None
    spotify_album_art: Optional[str] = None
    spotify_uri: Optional[str] = None
    created_at: datetime

    @computed_field
    @property
    def spotify_embed_url(self) -> Optional[str]:
        return spotify_embed_url(self.spotify_uri)

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str:
        return as_utc_isoformat(dt)

    class Config:
        from_attributes = True


class InboxEntry(Message):
    reactions: List[ReactionResponse] = []
    reaction_counts: Dict[str, int] = {}
    reply_count: int = 0
    # Типы реакций, которые текущий пользователь уже использовал
    reacted_types: List[str] = []


class InboxResponse(BaseModel):
    received: List[InboxEntry]
    sent: List[InboxEntry]
