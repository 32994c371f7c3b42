"""
Cancellation and deferred-mutation primitives shared by session components.

Everything here runs on a single event loop; nothing is thread-safe.
"""

from collections import deque
from typing import Any, Callable, Optional

from loguru import logger


class CancellationToken:
    """Cooperative cancellation flag passed into uploads, probes and polling loops.

    Once cancelled, callbacks wrapped with ``guard`` become no-ops.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the token and run registered teardown callbacks once."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """Register a callback to run on cancellation (immediately if already cancelled)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def guard(self, fn: Callable[..., Any]) -> Callable[..., Optional[Any]]:
        """Wrap fn so calls after cancellation return None without running it."""

        def guarded(*args, **kwargs):
            if self._cancelled:
                return None
            return fn(*args, **kwargs)

        return guarded


class DeferredQueue:
    """FIFO of pending mutations, drained by the rendering layer between frames."""

    def __init__(self) -> None:
        self._pending: deque[Callable[[], Any]] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def post(self, mutation: Callable[[], Any]) -> None:
        self._pending.append(mutation)

    def drain(self) -> int:
        """Apply queued mutations in scheduling order.

        Mutations posted while draining run in the same drain, after the
        ones already queued.

        Returns:
            Number of mutations applied
        """
        applied = 0
        while self._pending:
            mutation = self._pending.popleft()
            mutation()
            applied += 1
        return applied
