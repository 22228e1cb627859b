"""Cancellation support for async operations."""

import logging
from asyncio import CancelledError
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Token for cooperative cancellation of async operations.

    The agent owns one token; ``ReActAgent.interrupt()`` cancels it. The loop
    checks ``is_cancelled`` at its checkpoints (before each model call and
    each tool call) and registers callbacks to cancel in-flight work.

    Example:
        token = CancellationToken()

        async def long_operation():
            for chunk in stream:
                token.raise_if_cancelled()
                yield chunk

        # From elsewhere:
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation and notify callbacks."""
        if self._cancelled:
            return
        self._cancelled = True
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception:
                # A failing callback must not prevent cancellation of the rest
                logger.warning("Cancellation callback failed", exc_info=True)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when cancelled.

        If already cancelled, callback is invoked immediately.
        """
        self._callbacks.append(callback)
        if self._cancelled:
            try:
                callback()
            except Exception:
                logger.warning("Cancellation callback failed", exc_info=True)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback previously added with on_cancel()."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested.

        Raises:
            asyncio.CancelledError: If cancel() was called.
        """
        if self._cancelled:
            raise CancelledError("Operation cancelled by user")

    def reset(self) -> None:
        """Reset the token for reuse.

        Clears cancelled state and drops callbacks left over from a previous run.
        """
        self._cancelled = False
        self._callbacks.clear()
