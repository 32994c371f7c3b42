"""
Signed upload targets for the Internet Archive S3-compatible store.

Pure computation over credentials and file metadata: nothing here touches the
network. The session PUTs the file bytes straight to the returned URL.
"""

import base64
import hashlib
import hmac
import random
import re
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, Optional
from urllib.parse import urlparse

from album_keeper.core.config import ArchiveConfig
from album_keeper.domain.exceptions import CredentialsMissingError, InvalidRequestError
from album_keeper.domain.models import ArchiveCredentials

AUTO_MAKE_BUCKET_HEADER = "x-amz-auto-make-bucket"

_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class UploadRequest:
    """What the session wants to upload."""

    file_name: str
    content_type: str
    title: str = ""
    artist: str = ""

    def validate(self) -> None:
        if not self.file_name or not self.content_type:
            raise InvalidRequestError("Missing required fields")


@dataclass
class UploadTarget:
    """A one-time authorization to write a single file directly to the store."""

    upload_url: str
    headers: Dict[str, str]
    playback_url: str
    details_url: str
    identifier: str
    file_name: str = ""

    def to_api(self) -> Dict[str, object]:
        return {
            "uploadUrl": self.upload_url,
            "headers": dict(self.headers),
            "playbackUrl": self.playback_url,
            "iaDetailsUrl": self.details_url,
            "identifier": self.identifier,
        }

    @classmethod
    def from_api(cls, data: Dict[str, object]) -> "UploadTarget":
        return cls(
            upload_url=str(data["uploadUrl"]),
            headers={str(k): str(v) for k, v in dict(data["headers"]).items()},
            playback_url=str(data["playbackUrl"]),
            details_url=str(data.get("iaDetailsUrl") or ""),
            identifier=str(data.get("identifier") or ""),
        )


def sanitize_metadata(value: str) -> str:
    """Reduce free text to the store's header-safe alphabet (alnum and hyphen, lowercase).

    >>> sanitize_metadata("Hello, World!")
    'hello-world-'
    """
    value = re.sub(r"[^a-zA-Z0-9-]", "-", value or "")
    value = re.sub(r"-{2,}", "-", value)
    return value.lower()


def clean_file_name(file_name: str) -> str:
    """Keep letters, digits, dot, underscore and hyphen; everything else becomes a hyphen."""
    return re.sub(r"[^a-zA-Z0-9._-]", "-", file_name)


def generate_bucket_name(
    prefix: str = "music",
    now_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Globally unique item identifier: <prefix>-<epoch ms>-<random base36>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_BASE36) for _ in range(6))
    return f"{prefix}-{now_ms}-{suffix}"


def create_signature(
    credentials: ArchiveCredentials,
    content_type: str,
    date: str,
    bucket: str,
    key: str,
) -> str:
    """Authorization header value for a bucket-creating PUT.

    Canonical string: method, empty content-md5, content type, date, the
    auto-make-bucket header and the resource path, newline separated.
    """
    string_to_sign = "\n".join(
        [
            "PUT",
            "",
            content_type,
            date,
            f"{AUTO_MAKE_BUCKET_HEADER}:1",
            f"/{bucket}/{key}",
        ]
    )
    digest = hmac.new(
        credentials.secret_key.encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    signature = base64.b64encode(digest).decode("ascii")
    return f"LOW {credentials.access_key}:{signature}"


def issue_upload_target(
    request: UploadRequest,
    credentials: Optional[ArchiveCredentials],
    config: Optional[ArchiveConfig] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> UploadTarget:
    """Compute the signed URL and headers for uploading one file.

    Args:
        request: File name, content type and display metadata
        credentials: The caller's stored archive keys
        config: Store endpoints and item metadata defaults
        now: Signing time (defaults to the current UTC time)
        rng: Random source for the identifier suffix

    Returns:
        UploadTarget with the PUT URL, required headers and eventual playback URL

    Raises:
        CredentialsMissingError: No credentials are stored for the caller
        InvalidRequestError: File name or content type missing
    """
    if credentials is None or not credentials.access_key or not credentials.secret_key:
        raise CredentialsMissingError()
    request.validate()

    config = config or ArchiveConfig()
    now = now or datetime.now(timezone.utc)

    bucket = generate_bucket_name(
        config.bucket_prefix, now_ms=int(now.timestamp() * 1000), rng=rng
    )
    key = clean_file_name(request.file_name)
    date = format_datetime(now.astimezone(timezone.utc), usegmt=True)

    headers = {
        "Authorization": create_signature(
            credentials, request.content_type, date, bucket, key
        ),
        "Content-Type": request.content_type,
        "Date": date,
        AUTO_MAKE_BUCKET_HEADER: "1",
        "x-archive-meta-mediatype": config.mediatype,
        "x-archive-meta-title": sanitize_metadata(request.title),
        "x-archive-meta-creator": sanitize_metadata(request.artist),
        "x-archive-meta01-collection": config.collection,
    }

    return UploadTarget(
        upload_url=f"{config.s3_endpoint.rstrip('/')}/{bucket}/{key}",
        headers=headers,
        playback_url=f"{config.download_base_url.rstrip('/')}/{bucket}/{key}",
        details_url=f"{config.details_base_url.rstrip('/')}/{bucket}",
        identifier=bucket,
        file_name=key,
    )


def identifier_from_url(url: Optional[str]) -> Optional[str]:
    """Extract the archive item identifier from an S3 or download URL.

    Handles ``https://s3.us.archive.org/<id>/<file>`` and
    ``https://archive.org/download/<id>/<file>``.
    """
    if not url:
        return None
    parsed = urlparse(url)
    parts = [part for part in parsed.path.split("/") if part]
    if not parts:
        return None
    if parsed.netloc.startswith("s3."):
        return parts[0]
    if parts[0] in ("download", "details") and len(parts) > 1:
        return parts[1]
    return None


def file_key_from_url(url: Optional[str]) -> Optional[str]:
    """The file name part of an S3 or download URL."""
    identifier = identifier_from_url(url)
    if not identifier:
        return None
    path = urlparse(url).path
    _, _, rest = path.partition(f"/{identifier}/")
    return rest or None


def details_url_for(url: Optional[str], config: Optional[ArchiveConfig] = None) -> Optional[str]:
    """Item page URL for a playback URL."""
    identifier = identifier_from_url(url)
    if not identifier:
        return None
    config = config or ArchiveConfig()
    return f"{config.details_base_url.rstrip('/')}/{identifier}"
