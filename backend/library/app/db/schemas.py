from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict

# --- Song schemas ------------------------------------------------------------

class Song(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    artist: str
    album: Optional[str] = None
    genre: Optional[str] = None
    duration: int
    formatted_duration: str
    cover_image_url: Optional[str] = None
    play_count: int = 0


# --- Library schemas ---------------------------------------------------------

class LibraryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    song_id: UUID
    added_at: datetime
    is_active: bool
    song: Song | None = None
    created_at: datetime
    updated_at: datetime

class ToggleResult(BaseModel):
    added: bool
    message: str

class RemoveResult(BaseModel):
    removed: bool
    message: str

class Membership(BaseModel):
    song_id: UUID
    in_library: bool

class LibraryCount(BaseModel):
    count: int
