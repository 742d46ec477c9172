"""Ordered shutdown of the item store and the list mediator."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)

LifecycleNotification = Callable[["LifecycleEvent"], None]
ShutdownWaiter = Callable[[float], bool]


class LifecycleEvent(str, Enum):
    PREPARE_SHUTDOWN = "prepare-shutdown"
    SHUTDOWN = "shutdown"
    AFTER_SHUTDOWN = "after-shutdown"


class LifecycleCoordinatorProtocol(ABC):
    """Protocol for lifecycle coordinator implementations."""

    @abstractmethod
    def register_lifecycle_notification(self, callback: LifecycleNotification) -> None: ...

    @abstractmethod
    def register_shutdown_waiter(self, name: str, handler: ShutdownWaiter) -> None: ...

    @abstractmethod
    def shutdown(self) -> None: ...


class LifecycleCoordinator(LifecycleCoordinatorProtocol):
    """Runs the shutdown sequence of a shopping list process.

    PREPARE_SHUTDOWN makes the mediator reject new operations. Waiters then
    get whatever is left of the graceful timeout to drain queued writes.
    SHUTDOWN stops the worker pool and AFTER_SHUTDOWN closes the item feed
    and disposes the engine.
    """

    def __init__(self, graceful_shutdown_timeout: int):
        self._graceful_shutdown_timeout = graceful_shutdown_timeout
        self._shutdown_started = False
        self._lock = threading.RLock()
        self._notifications: list[LifecycleNotification] = []
        self._waiters: dict[str, ShutdownWaiter] = {}

    def register_lifecycle_notification(self, callback: LifecycleNotification) -> None:
        with self._lock:
            self._notifications.append(callback)

    def register_shutdown_waiter(self, name: str, handler: ShutdownWaiter) -> None:
        with self._lock:
            self._waiters[name] = handler

    def shutdown(self) -> None:
        with self._lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True
            waiters = list(self._waiters.items())

        logger.debug("Shutting down")
        self._notify(LifecycleEvent.PREPARE_SHUTDOWN)

        deadline = time.monotonic() + self._graceful_shutdown_timeout
        if not self._drain(waiters, deadline):
            logger.error(
                f"Pending work not drained within {self._graceful_shutdown_timeout}s, "
                "forcing shutdown"
            )

        self._notify(LifecycleEvent.SHUTDOWN)
        self._notify(LifecycleEvent.AFTER_SHUTDOWN)
        logger.debug("Shutdown complete")

    def _drain(self, waiters: list[tuple[str, ShutdownWaiter]], deadline: float) -> bool:
        drained = True
        for name, waiter in waiters:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.error(f"No time left to wait for {name}")
                return False
            try:
                if not waiter(remaining):
                    logger.warning(f"{name} still busy after {remaining:.1f}s")
                    drained = False
            except Exception as e:
                logger.error(f"Error in shutdown waiter {name}: {e}")
                drained = False
        return drained

    def _notify(self, event: LifecycleEvent) -> None:
        with self._lock:
            callbacks = list(self._notifications)
        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error handling {event.value}: {e}")
