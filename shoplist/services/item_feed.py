"""Observable feed of item list snapshots.

The feed keeps a registry of subscribers. Every publish pushes the full,
current list of items to each of them through the configured dispatcher.
New subscribers receive the current snapshot straight away, so subscribing
again after a dispose always starts from fresh data.
"""

import logging
import threading
from collections.abc import Callable

from shoplist.exceptions import InvalidOperationException
from shoplist.schemas.item_schema import ItemSchema
from shoplist.utils.dispatchers import DispatcherProtocol

logger = logging.getLogger(__name__)

ItemObserver = Callable[[list[ItemSchema]], None]


class Subscription:
    """Handle returned by ItemFeed.subscribe()."""

    def __init__(self, feed: "ItemFeed", observer: ItemObserver):
        self._feed = feed
        self.observer = observer
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Stop receiving snapshots. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._feed._remove(self)


class ItemFeed:
    """Live, never-completing stream of item list snapshots."""

    def __init__(
        self,
        dispatcher: DispatcherProtocol,
        loader: Callable[[], list[ItemSchema]],
        lock=None,
    ):
        """Initialize ItemFeed.

        Args:
            dispatcher: Delivery context observers are invoked on
            loader: Reads the current snapshot for new subscribers
            lock: Lock the owner publishes under; shared so an initial
                snapshot can never be dispatched after a newer one
        """
        self.dispatcher = dispatcher
        self._loader = loader
        self._subscriptions: list[Subscription] = []
        self._closed = False
        self._lock = lock if lock is not None else threading.RLock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def subscribe(self, observer: ItemObserver) -> Subscription:
        """Register an observer and deliver the current snapshot to it.

        Raises:
            InvalidOperationException: If the feed has been closed
            StorageFailure: If the current snapshot cannot be read
        """
        with self._lock:
            if self._closed:
                raise InvalidOperationException(
                    "subscribe to items", "the item store is closed"
                )
            subscription = Subscription(self, observer)
            self._subscriptions.append(subscription)
            logger.debug(f"Observer subscribed ({len(self._subscriptions)} active)")

            # Load and dispatch while holding the lock so no publish can
            # overtake the initial snapshot
            try:
                snapshot = self._loader()
            except Exception:
                subscription.dispose()
                raise

            self.dispatcher.dispatch(self._deliver, subscription, snapshot)

        return subscription

    def publish(self, snapshot: list[ItemSchema]) -> int:
        """Push a snapshot to every active subscriber.

        Returns:
            Number of subscribers the snapshot was dispatched to
        """
        with self._lock:
            if self._closed:
                return 0
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            self.dispatcher.dispatch(self._deliver, subscription, snapshot)

        return len(subscriptions)

    def close(self) -> None:
        """End the feed and dispose every subscription."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            subscription.dispose()

        logger.debug("Item feed closed")

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _deliver(self, subscription: Subscription, snapshot: list[ItemSchema]) -> None:
        # Snapshots queued before a dispose must not reach the observer
        if subscription.disposed:
            return
        try:
            subscription.observer(list(snapshot))
        except Exception as e:
            logger.warning(f"Item observer failed: {e}")
