"""List mediator: the UI-facing surface over the item store.

Every mutation is handed to a background worker pool and the call returns
immediately, so the UI thread never waits on storage I/O. Units of work are
independent and no ordering between them is promised; two calls made back
to back may reach the store in either order.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from prometheus_client import Counter, Gauge

from shoplist.exceptions import (
    BusinessLogicException,
    InvalidOperationException,
    StorageFailure,
)
from shoplist.schemas.item_schema import ItemSchema
from shoplist.schemas.operation_schema import ItemOperation, ItemOperationFailure
from shoplist.services.item_feed import ItemObserver, Subscription
from shoplist.services.item_store import ItemStore
from shoplist.utils.lifecycle_coordinator import LifecycleCoordinatorProtocol, LifecycleEvent

ITEM_OPERATIONS_TOTAL = Counter(
    "item_operations_total",
    "Item operations dispatched by the list mediator",
    ["operation", "status"],
)
ITEM_OPERATIONS_PENDING = Gauge(
    "item_operations_pending",
    "Item operations waiting for or running on a background worker",
)

logger = logging.getLogger(__name__)


class ListMediator:
    """Stateless bridge between UI events and the item store."""

    def __init__(
        self,
        item_store: ItemStore,
        lifecycle_coordinator: LifecycleCoordinatorProtocol,
        max_workers: int = 4,
    ):
        """Initialize ListMediator.

        Args:
            item_store: Store that owns the item table
            lifecycle_coordinator: Coordinator for graceful shutdown
            max_workers: Size of the background worker pool
        """
        self.item_store = item_store
        self.lifecycle_coordinator = lifecycle_coordinator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="item-io"
        )
        self._pending: set[Future[None]] = set()
        self._idle = threading.Condition()
        self._shutting_down = False
        self._on_failure_callbacks: list[Callable[[ItemOperationFailure], None]] = []
        self._lock = threading.RLock()

        lifecycle_coordinator.register_lifecycle_notification(self._on_lifecycle_event)
        lifecycle_coordinator.register_shutdown_waiter("ListMediator", self.wait_until_idle)

        logger.debug(f"ListMediator initialized: max_workers={max_workers}")

    def observe_items(self, observer: ItemObserver) -> Subscription:
        """Subscribe to the store's live item snapshots."""
        return self.item_store.fetch_all().subscribe(observer)

    def add_item(self, name: str) -> None:
        """Schedule an insert; returns before the item is stored."""
        self._dispatch(ItemOperation.ADD, name, None, self.item_store.insert, name)

    def remove_item(self, item: ItemSchema) -> None:
        """Schedule a delete; returns before the item is removed."""
        self._dispatch(ItemOperation.REMOVE, item.name, item.id, self.item_store.delete, item)

    def register_on_failure(self, callback: Callable[[ItemOperationFailure], None]) -> None:
        """Register a callback to be notified when a dispatched operation fails.

        Callbacks run on the worker thread that performed the operation.
        """
        with self._lock:
            self._on_failure_callbacks.append(callback)

    @property
    def pending_count(self) -> int:
        with self._idle:
            return len(self._pending)

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every dispatched operation has finished.

        Returns:
            True if idle, False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def _dispatch(
        self,
        operation: ItemOperation,
        item_name: str,
        item_id: int | None,
        fn: Callable[..., object],
        arg: object,
    ) -> None:
        with self._lock:
            if self._shutting_down:
                raise InvalidOperationException(
                    f"{operation.value} item", "the list is shutting down"
                )

            with self._idle:
                future = self._executor.submit(
                    self._run, operation, item_name, item_id, fn, arg
                )
                self._pending.add(future)
                ITEM_OPERATIONS_PENDING.inc()

        future.add_done_callback(self._on_done)

    def _run(
        self,
        operation: ItemOperation,
        item_name: str,
        item_id: int | None,
        fn: Callable[..., object],
        arg: object,
    ) -> None:
        try:
            fn(arg)
            ITEM_OPERATIONS_TOTAL.labels(operation=operation.value, status="success").inc()
        except Exception as e:
            if isinstance(e, StorageFailure):
                logger.error(f"Failed to {operation.value} item {item_name!r}: {e}")
            else:
                logger.exception(f"Unexpected error during {operation.value} of item {item_name!r}")
            self._report_failure(operation, item_name, item_id, e)

    def _report_failure(
        self,
        operation: ItemOperation,
        item_name: str,
        item_id: int | None,
        error: Exception,
    ) -> None:
        ITEM_OPERATIONS_TOTAL.labels(operation=operation.value, status="failed").inc()

        if isinstance(error, BusinessLogicException):
            error_code, message = error.error_code, error.message
        else:
            error_code, message = "INTERNAL_ERROR", str(error)

        failure = ItemOperationFailure(
            operation=operation,
            item_name=item_name,
            item_id=item_id,
            error_code=error_code,
            message=message,
        )

        with self._lock:
            callbacks_to_notify = list(self._on_failure_callbacks)

        for callback in callbacks_to_notify:
            try:
                callback(failure)
            except Exception as e:
                logger.warning(f"Failure callback failed: {e}")

    def _on_done(self, future: "Future[None]") -> None:
        with self._idle:
            self._pending.discard(future)
            ITEM_OPERATIONS_PENDING.dec()
            if not self._pending:
                self._idle.notify_all()

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        if event == LifecycleEvent.PREPARE_SHUTDOWN:
            with self._lock:
                self._shutting_down = True
            logger.info(f"ListMediator draining {self.pending_count} pending operation(s)")
        elif event == LifecycleEvent.SHUTDOWN:
            self._executor.shutdown(wait=False)
