"""Mark-dirty / flush-after-quiescence scheduling primitive.

Debouncer coalesces bursts of changes into one call of a synchronous flush
callback. Each mark_dirty() restarts the quiescence window on the running
event loop; flush() runs the callback immediately if anything is pending.
Without a running loop nothing is scheduled and the owner must flush().
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces rapid successive changes into a single flush.

    Example:
        >>> debouncer = Debouncer(store.save, delay=0.1)
        >>> debouncer.mark_dirty()
        >>> debouncer.mark_dirty()  # still one save after 100 ms of quiet
        >>> debouncer.flush()       # or force it now
    """

    def __init__(self, callback: Callable[[], None], delay: float) -> None:
        self._callback = callback
        self._delay = delay
        self._dirty = False
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """True if changes are waiting to be flushed."""
        return self._dirty

    def mark_dirty(self) -> None:
        """Record a change and restart the quiescence timer."""
        self._dirty = True
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(self._delay, self._on_timer)

    def flush(self) -> None:
        """Run the callback now if changes are pending.

        Raises:
            Whatever the callback raises; the changes stay pending in that case.
        """
        self._cancel_timer()
        if not self._dirty:
            return
        self._callback()
        self._dirty = False

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_timer(self) -> None:
        self._handle = None
        try:
            self.flush()
        except Exception as e:
            logger.error("Debounced flush failed: %s", e)
        else:
            logger.debug("Debounced flush completed")
