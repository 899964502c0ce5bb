from pydantic import BaseModel
from typing import List, Optional

class TrackSearchRequest(BaseModel):
    query: str = ""

class Track(BaseModel):
    id: str
    name: str
    artist: str
    album_art: str = ""
    uri: str
    preview_url: Optional[str] = None

class TrackSearchResponse(BaseModel):
    tracks: List[Track]
