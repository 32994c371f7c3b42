"""Album Keeper exceptions for error handling.

Every error carries the HTTP status it maps to at the API boundary.
"""

from typing import Optional


class AlbumKeeperError(Exception):
    """Base exception for Album Keeper operations."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class InvalidRequestError(AlbumKeeperError):
    """Raised when a request is missing required fields or is malformed."""

    status_code = 400


class CredentialsMissingError(AlbumKeeperError):
    """Raised when no archive credentials are stored for the caller."""

    status_code = 400

    def __init__(self, message: str = "Archive credentials not found"):
        super().__init__(message)


class UnauthorizedError(AlbumKeeperError):
    """Raised when the caller is not authenticated."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ReadOnlyViewError(UnauthorizedError):
    """Raised when a guest viewer attempts to mutate a shared album."""

    def __init__(self, message: str = "This album is read-only"):
        super().__init__(message)


class NotFoundError(AlbumKeeperError):
    """Raised when an album or track does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class UploadFailedError(AlbumKeeperError):
    """Raised when the direct transfer to the archive store fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        store_status: Optional[int] = None,
        response_body: str = "",
    ):
        self.store_status = store_status
        self.response_body = response_body
        super().__init__(message)


class PersistenceFailedError(AlbumKeeperError):
    """Raised when the archive upload succeeded but the track record was not created."""

    status_code = 500

    def __init__(self, message: str, playback_url: Optional[str] = None):
        # The remote file at playback_url is orphaned when this is raised
        self.playback_url = playback_url
        super().__init__(message)


class ProbeInconclusiveError(AlbumKeeperError):
    """Raised internally when a readiness probe gets no definitive answer."""


class ReorderRejectedError(AlbumKeeperError):
    """Raised when a new track order could not be persisted."""

    status_code = 500
