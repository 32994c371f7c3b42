"""
Data models for albums, tracks and archive credentials.

Tracks travel in three shapes: database rows (snake_case, ``track_order``),
API payloads (camelCase, ``trackNumber``) and these dataclasses.
"""

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

DEFAULT_ARTIST = "Unknown Artist"
DURATION_PLACEHOLDER = "0:00"

Duration = Union[float, int, str, None]


class TrackSource(str, Enum):
    """Where a track's audio lives."""

    LOCAL = "local"
    REMOTE_ARCHIVE = "ia"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime (naive values are treated as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def duration_seconds(duration: Duration) -> Optional[float]:
    """Numeric duration in seconds, or None when unknown.

    Placeholder strings ("0:00", "--:--") and other non-numeric values are unknown.
    """
    if isinstance(duration, bool):
        return None
    if isinstance(duration, (int, float)):
        return float(duration)
    return None


def format_duration(duration: Duration) -> str:
    """Format a track duration as m:ss ("--:--" when unknown)."""
    seconds = duration_seconds(duration)
    if seconds is None:
        return "--:--"
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


@dataclass
class Track:
    """
    A single playable audio item in an album.

    Attributes:
        id: Server-issued identifier (or a temp- token while optimistic)
        album_id: Owning album
        title: Track title
        artist: Artist name
        order: Zero-based position within the album
        playback_url: Archive download URL (None until the upload completes)
        duration: Seconds, or None / "0:00" when unknown
        processing: True until the archive confirms the file is retrievable
        source: Origin of the audio
        created_at: Creation time (drives the readiness fallback)
        file_name: Original file name
    """

    id: str
    album_id: str
    title: str
    artist: str = DEFAULT_ARTIST
    order: int = 0
    playback_url: Optional[str] = None
    duration: Duration = None
    processing: bool = False
    source: TrackSource = TrackSource.REMOTE_ARCHIVE
    created_at: Optional[datetime] = None
    file_name: Optional[str] = None

    @property
    def track_number(self) -> int:
        """One-based number shown to users."""
        return self.order + 1

    @property
    def is_playable(self) -> bool:
        return bool(self.playback_url) and not self.processing

    @property
    def duration_seconds(self) -> Optional[float]:
        return duration_seconds(self.duration)

    def with_order(self, order: int) -> "Track":
        """Return a copy at a new position."""
        return replace(self, order=order)

    def to_api(self) -> Dict[str, Any]:
        """Convert track to an API payload."""
        return {
            "id": self.id,
            "albumId": self.album_id,
            "title": self.title,
            "artist": self.artist,
            "order": self.order,
            "trackNumber": self.track_number,
            "playbackUrl": self.playback_url,
            "duration": self.duration,
            "processing": self.processing,
            "source": self.source.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "fileName": self.file_name,
        }

    @classmethod
    def from_row(cls, row) -> "Track":
        """Create Track from a database row."""
        return cls(
            id=row["id"],
            album_id=row["album_id"],
            title=row["title"],
            artist=row["artist"] or DEFAULT_ARTIST,
            order=row["track_order"],
            playback_url=row["playback_url"],
            duration=row["duration"],
            processing=bool(row["processing"]),
            source=TrackSource(row["source"]),
            created_at=parse_timestamp(row["created_at"]),
            file_name=row["file_name"],
        )

    @classmethod
    def from_api(cls, data: Dict[str, Any], album_id: Optional[str] = None) -> "Track":
        """Create Track from an API payload, tolerating legacy key names."""
        order = data.get("order")
        if order is None and data.get("trackNumber") is not None:
            order = int(data["trackNumber"]) - 1
        return cls(
            id=str(data["id"]),
            album_id=str(data.get("albumId") or album_id or ""),
            title=data.get("title") or "",
            artist=data.get("artist") or DEFAULT_ARTIST,
            order=int(order or 0),
            playback_url=data.get("playbackUrl") or data.get("audio_url"),
            duration=data.get("duration"),
            processing=bool(data.get("processing", False)),
            source=TrackSource(data.get("source") or TrackSource.REMOTE_ARCHIVE.value),
            created_at=parse_timestamp(data.get("created_at") or data.get("createdAt")),
            file_name=data.get("fileName"),
        )


@dataclass
class OverlayTrack(Track):
    """A track that exists only in this session (mid-upload)."""

    is_uploading: bool = True
    upload_progress: int = 0

    @staticmethod
    def generate_id() -> str:
        """Generate a temporary track ID that can never collide with a server ID."""
        return f"temp-{uuid.uuid4().hex}"


@dataclass
class Album:
    """
    A named, ordered collection of tracks owned by one user.
    """

    id: str
    user_id: str
    title: str
    artist: str = DEFAULT_ARTIST
    description: str = ""
    release_date: Optional[str] = None
    cover_url: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tracks: list[Track] = field(default_factory=list)

    @staticmethod
    def generate_id() -> str:
        """Generate a unique album ID (opaque, safe to share)."""
        return uuid.uuid4().hex

    @property
    def total_duration(self) -> float:
        return total_duration(self.tracks)

    def to_api(self, include_tracks: bool = True) -> Dict[str, Any]:
        """Convert album to an API payload."""
        payload = {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "description": self.description,
            "releaseDate": self.release_date,
            "coverUrl": self.cover_url,
            "isPublic": self.is_public,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_tracks:
            payload["tracks"] = [track.to_api() for track in self.tracks]
            payload["totalDuration"] = self.total_duration
            payload["totalDurationText"] = format_total_duration(self.total_duration)
        return payload

    def to_snapshot(self) -> Dict[str, Any]:
        """Full album + tracks payload stored in the trash buffer."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        data["tracks"] = [
            {
                **asdict(track),
                "source": track.source.value,
                "created_at": track.created_at.isoformat() if track.created_at else None,
            }
            for track in self.tracks
        ]
        return data

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "Album":
        """Rebuild an album from a trash snapshot."""
        tracks = [
            Track(
                **{
                    **track,
                    "source": TrackSource(track["source"]),
                    "created_at": parse_timestamp(track.get("created_at")),
                }
            )
            for track in data.get("tracks", [])
        ]
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data["title"],
            artist=data.get("artist") or DEFAULT_ARTIST,
            description=data.get("description") or "",
            release_date=data.get("release_date"),
            cover_url=data.get("cover_url"),
            is_public=bool(data.get("is_public", False)),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            tracks=tracks,
        )

    @classmethod
    def from_row(cls, row, tracks: Optional[list[Track]] = None) -> "Album":
        """Create Album from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            artist=row["artist"] or DEFAULT_ARTIST,
            description=row["description"] or "",
            release_date=row["release_date"],
            cover_url=row["cover_url"],
            is_public=bool(row["is_public"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            tracks=tracks or [],
        )


@dataclass(frozen=True)
class ArchiveCredentials:
    """Per-user Internet Archive S3 keys."""

    access_key: str
    secret_key: str

    @classmethod
    def cleaned(cls, access_key: str, secret_key: str) -> "ArchiveCredentials":
        return cls(access_key=access_key.strip(), secret_key=secret_key.strip())


def total_duration(tracks: Iterable[Track]) -> float:
    """Sum of known numeric durations; unknown durations count as zero."""
    return sum(track.duration_seconds or 0.0 for track in tracks)


def format_total_duration(seconds: float) -> str:
    """Format an album length as "1 hr 5 min" / "42 min" ("" when empty)."""
    if not seconds:
        return ""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 0:
        return f"{hours} hr {minutes} min"
    return f"{minutes} min"


def renumber(tracks: Iterable[Track]) -> list[Track]:
    """Return tracks with orders rewritten to match list position (0..n-1)."""
    return [
        track if track.order == index else track.with_order(index)
        for index, track in enumerate(tracks)
    ]
