"""User-visible notifications raised by session components."""

from dataclasses import dataclass, field
from typing import Callable, Literal, Optional

from loguru import logger

from album_keeper.domain.exceptions import AlbumKeeperError

Level = Literal["info", "success", "error"]


@dataclass
class Notification:
    """A message for the user, with the error kind it came from (if any)."""

    message: str
    level: Level = "info"
    title: str = ""
    error_type: Optional[str] = None
    details: str = ""

    @classmethod
    def from_error(cls, error: AlbumKeeperError, title: str = "") -> "Notification":
        details = getattr(error, "response_body", "") or ""
        playback_url = getattr(error, "playback_url", None)
        if playback_url:
            details = f"Orphaned file: {playback_url}"
        return cls(
            message=error.message,
            level="error",
            title=title,
            error_type=type(error).__name__,
            details=details,
        )


@dataclass
class Notifier:
    """Collects notifications and forwards them to listeners.

    Every notification is logged; listeners (a UI, the CLI) render them.
    """

    history: list[Notification] = field(default_factory=list)
    _listeners: list[Callable[[Notification], None]] = field(default_factory=list)

    def subscribe(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notification: Notification) -> Notification:
        if notification.level == "error":
            logger.warning(
                f"{notification.error_type or 'Error'}: {notification.message}"
                + (f" ({notification.details[:200]})" if notification.details else "")
            )
        else:
            logger.info(notification.message)

        self.history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification

    def error(self, error: AlbumKeeperError, title: str = "") -> Notification:
        return self.publish(Notification.from_error(error, title))

    def success(self, message: str) -> Notification:
        return self.publish(Notification(message=message, level="success"))
