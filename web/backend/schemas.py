from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies use camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CredentialsRequest(CamelModel):
    access_key: Optional[str] = None
    secret_key: Optional[str] = None


class UploadUrlRequest(CamelModel):
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    title: str = ""
    artist: str = ""


class CreateAlbumRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    cover_art: Optional[str] = None  # URL or data URL
    release_date: Optional[str] = None


class UpdateAlbumRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    release_date: Optional[str] = None
    is_public: Optional[bool] = None


class UndoRequest(CamelModel):
    album_id: str


class CreateTrackRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    playback_url: Optional[str] = None
    file_name: Optional[str] = None
    duration: Optional[Union[float, str]] = None  # seconds; "0:00" means unknown


class DeleteTrackRequest(CamelModel):
    delete_from_ia: bool = Field(default=False, alias="deleteFromIA")


class TrackOrder(CamelModel):
    id: str
    order: int


class ReorderRequest(CamelModel):
    track_orders: list[TrackOrder]


class DurationRequest(CamelModel):
    duration: float


class UpdateTrackRequest(CamelModel):
    playback_url: Optional[str] = None
    processing: Optional[bool] = None


class CheckStatusRequest(CamelModel):
    track_id: str
    playback_url: Optional[str] = None


class SavedAlbumRequest(CamelModel):
    album_id: Optional[str] = None
