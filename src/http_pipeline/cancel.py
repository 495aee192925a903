"""Cooperative cancellation for in-flight requests.

A CancelToken is a shared, observable flag. It flips from "wanted" to
"cancelled" exactly once, and every callback registered before that moment
runs exactly once when it happens. Callbacks registered afterwards run
immediately.

Examples:
    Cancelling a request::

        from http_pipeline.cancel import CancelToken

        token = CancelToken()
        task = asyncio.create_task(client.get("/slow", cancel_token=token))

        token.cancel()  # the request fails with RequestCancelledError
"""

from collections.abc import Callable

from http_pipeline.observability.logging import get_logger

logger = get_logger(__name__)


class CancelToken:
    """Shared "is this operation still wanted" flag with a callback registry.

    Cancellation is cooperative: the executor and transport check the token
    at fixed checkpoints (before sending, after response metadata arrives and
    between streamed chunks) and abort the in-flight send through a callback.

    Attributes:
        is_cancelled: True once cancel() has been called.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the token.

        The first call flips the flag, then invokes and clears all registered
        callbacks. Later calls are no-ops. A failing callback does not stop
        the remaining callbacks from running.
        """
        if self._cancelled:
            return
        self._cancelled = True

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(
                    "cancel.callback_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to run on cancellation.

        If the token is already cancelled the callback runs synchronously
        instead of being registered.

        Args:
            callback: Zero-argument callable.
        """
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback. Unknown callbacks are ignored."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"
