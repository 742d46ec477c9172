"""Item store: the single owner of the persisted item table."""

import logging
import threading

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shoplist.exceptions import StorageFailure
from shoplist.models.item import Item
from shoplist.schemas.item_schema import ItemSchema
from shoplist.services.item_feed import ItemFeed
from shoplist.utils.dispatchers import DispatcherProtocol
from shoplist.utils.lifecycle_coordinator import LifecycleCoordinatorProtocol, LifecycleEvent

logger = logging.getLogger(__name__)


class ItemStore:
    """Durable storage of items, queryable as a live feed.

    Every successful insert, and every delete that removed a row, publishes
    a fresh snapshot of all items to the feed. Table access is serialized
    by the store so snapshots are published in mutation order.
    """

    def __init__(
        self,
        session_maker: sessionmaker[Session],
        dispatcher: DispatcherProtocol,
        lifecycle_coordinator: LifecycleCoordinatorProtocol,
    ):
        self.session_maker = session_maker
        self._lock = threading.RLock()
        self._feed = ItemFeed(dispatcher, self.snapshot, lock=self._lock)

        lifecycle_coordinator.register_lifecycle_notification(self._on_lifecycle_event)

    def fetch_all(self) -> ItemFeed:
        """Return the live feed of item snapshots."""
        return self._feed

    def snapshot(self) -> list[ItemSchema]:
        """Read all items, ordered by id."""
        with self._lock:
            try:
                with self.session_maker() as session:
                    rows = session.scalars(sa.select(Item).order_by(Item.id)).all()
                    return [ItemSchema.model_validate(row) for row in rows]
            except SQLAlchemyError as e:
                logger.error(f"Failed to read items: {e}")
                raise StorageFailure("read items", str(e)) from e

    def insert(self, name: str) -> ItemSchema:
        """Create a new item with a freshly assigned id.

        Raises:
            StorageFailure: If the item table cannot be written
        """
        with self._lock:
            try:
                with self.session_maker.begin() as session:
                    row = Item(name=name)
                    session.add(row)
                    session.flush()
                    item = ItemSchema.model_validate(row)
            except SQLAlchemyError as e:
                logger.error(f"Failed to insert item {name!r}: {e}")
                raise StorageFailure(f"insert item {name!r}", str(e)) from e

            logger.info(f"Inserted item {item.id} ({item.name!r})")
            self._publish_snapshot()
            return item

    def delete(self, item: ItemSchema) -> None:
        """Remove the row matching the item's id and name.

        Deleting an item that is not stored is a no-op.

        Raises:
            StorageFailure: If the item table cannot be written
        """
        with self._lock:
            try:
                with self.session_maker.begin() as session:
                    result = session.execute(
                        sa.delete(Item).where(Item.id == item.id, Item.name == item.name)
                    )
                    deleted = result.rowcount
            except SQLAlchemyError as e:
                logger.error(f"Failed to delete item {item.id}: {e}")
                raise StorageFailure(f"delete item {item.id}", str(e)) from e

            if not deleted:
                logger.debug(f"Delete of item {item.id} ({item.name!r}) matched no row")
                return

            logger.info(f"Deleted item {item.id} ({item.name!r})")
            self._publish_snapshot()

    def close(self) -> None:
        """End the feed. Stored items are untouched."""
        self._feed.close()

    def _publish_snapshot(self) -> None:
        try:
            snapshot = self.snapshot()
        except StorageFailure as e:
            # The write itself committed; observers catch up on the next change
            logger.warning(f"Skipping snapshot publish: {e}")
            return
        self._feed.publish(snapshot)

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        if event == LifecycleEvent.AFTER_SHUTDOWN:
            self.close()
