"""Delivery contexts for observer callbacks.

Snapshots are published on whichever thread performed the storage write.
A dispatcher decides where the observer actually runs: inline, or on the
thread that owns the user interface.
"""

import logging
import queue
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class DispatcherProtocol(ABC):
    """Protocol for scheduling callbacks onto a delivery context."""

    @abstractmethod
    def dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        """Schedule fn(*args) on this dispatcher's context."""
        pass


class ImmediateDispatcher(DispatcherProtocol):
    """Runs callbacks inline on the calling thread."""

    def dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        fn(*args)


class QueueDispatcher(DispatcherProtocol):
    """Queues callbacks for the UI-bound thread to run.

    Any thread may call dispatch(). Only the owning thread should call
    process_pending(), which is the equivalent of a UI event loop turn.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., None], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )

    def dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        self._queue.put((fn, args))

    def process_pending(self, timeout: float | None = None) -> int:
        """Run every queued callback.

        Args:
            timeout: Seconds to wait for the first callback when the queue is
                empty. None returns immediately.

        Returns:
            Number of callbacks that were run
        """
        processed = 0

        if timeout is not None:
            try:
                fn, args = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            self._run(fn, args)
            processed += 1

        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return processed
            self._run(fn, args)
            processed += 1

    def _run(self, fn: Callable[..., None], args: tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Dispatched callback failed: {e}")
