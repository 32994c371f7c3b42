"""Archive domain - Internet Archive storage.

This domain handles:
- Signing direct upload targets
- Streaming uploads with progress
- Readiness probes for uploaded files
- Remote file deletion
"""

from .signing import (
    UploadRequest,
    UploadTarget,
    clean_file_name,
    create_signature,
    details_url_for,
    file_key_from_url,
    generate_bucket_name,
    identifier_from_url,
    issue_upload_target,
    sanitize_metadata,
)

from .transport import (
    ArchiveTransport,
    ProgressReporter,
    UploadReceipt,
    UploadSource,
    estimate_progress,
    get_mime_type,
)

from .probe import (
    READY_FALLBACK_SECONDS,
    ProbeOutcome,
    probe_playback_url,
    resolve_readiness,
)

from .remote import delete_remote_file

__all__ = [
    # Signing
    "UploadRequest",
    "UploadTarget",
    "clean_file_name",
    "create_signature",
    "details_url_for",
    "file_key_from_url",
    "generate_bucket_name",
    "identifier_from_url",
    "issue_upload_target",
    "sanitize_metadata",
    # Transport
    "ArchiveTransport",
    "ProgressReporter",
    "UploadReceipt",
    "UploadSource",
    "estimate_progress",
    "get_mime_type",
    # Probe
    "READY_FALLBACK_SECONDS",
    "ProbeOutcome",
    "probe_playback_url",
    "resolve_readiness",
    # Remote
    "delete_remote_file",
]
