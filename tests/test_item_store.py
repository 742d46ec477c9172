"""Tests for ItemStore."""

import threading

import pytest
from sqlalchemy.exc import SQLAlchemyError

from shoplist.exceptions import InvalidOperationException, StorageFailure
from shoplist.models import Base
from shoplist.schemas.item_schema import ItemSchema
from shoplist.services.item_store import ItemStore
from tests.testing_utils import SnapshotRecorder


class TestItemStoreInsert:
    """Tests for inserting items."""

    def test_insert_returns_stored_item(self, item_store: ItemStore):
        item = item_store.insert("Milk")

        assert isinstance(item, ItemSchema)
        assert item.name == "Milk"
        assert item.id >= 1

    def test_ids_are_distinct_and_increasing(self, item_store: ItemStore):
        ids = [item_store.insert(f"item {i}").id for i in range(6)]

        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)
        assert all(a < b for a, b in zip(ids, ids[1:]))

    def test_insert_adds_exactly_one_item(self, item_store: ItemStore):
        item_store.insert("Bread")
        before = item_store.snapshot()

        item_store.insert("Butter")
        after = item_store.snapshot()

        assert len(after) == len(before) + 1
        added = [item for item in after if item not in before]
        assert [item.name for item in added] == ["Butter"]

    def test_duplicate_names_allowed(self, item_store: ItemStore):
        first = item_store.insert("Apples")
        second = item_store.insert("Apples")

        assert first.id != second.id
        assert [item.name for item in item_store.snapshot()] == ["Apples", "Apples"]

    def test_empty_name_accepted_by_store(self, item_store: ItemStore):
        """Emptiness is a presenter concern; the store itself stores it."""
        item = item_store.insert("")

        assert item.name == ""
        assert item_store.snapshot() == [item]

    def test_ids_not_reused_after_deleting_last_item(self, item_store: ItemStore):
        first = item_store.insert("Tea")
        last = item_store.insert("Coffee")
        item_store.delete(last)

        replacement = item_store.insert("Cocoa")

        assert replacement.id > last.id > first.id


class TestItemStoreDelete:
    """Tests for deleting items."""

    def test_delete_removes_item(self, item_store: ItemStore):
        item = item_store.insert("Cheese")

        item_store.delete(item)

        assert all(stored.id != item.id for stored in item_store.snapshot())

    def test_delete_missing_item_is_noop(self, item_store: ItemStore):
        item_store.insert("Rice")
        before = item_store.snapshot()

        item_store.delete(ItemSchema(id=999, name="Ghost"))

        assert item_store.snapshot() == before

    def test_delete_twice_is_noop(self, item_store: ItemStore):
        item = item_store.insert("Beans")
        item_store.delete(item)

        item_store.delete(item)

        assert item_store.snapshot() == []

    def test_delete_requires_matching_name(self, item_store: ItemStore):
        item = item_store.insert("Pasta")

        item_store.delete(ItemSchema(id=item.id, name="Noodles"))

        assert item_store.snapshot() == [item]

    def test_round_trip(self, item_store: ItemStore):
        milk = item_store.insert("Milk")
        assert ItemSchema(id=milk.id, name="Milk") in item_store.snapshot()

        item_store.delete(ItemSchema(id=milk.id, name="Milk"))

        assert milk.id not in [item.id for item in item_store.snapshot()]

    def test_bread_and_eggs_scenario(self, item_store: ItemStore):
        bread = item_store.insert("Bread")
        eggs = item_store.insert("Eggs")

        items = item_store.snapshot()
        assert len(items) == 2
        assert {item.name for item in items} == {"Bread", "Eggs"}
        assert bread.id != eggs.id

        item_store.delete(bread)

        assert item_store.snapshot() == [eggs]


class TestItemStoreFeed:
    """Tests for the live feed returned by fetch_all()."""

    def test_fetch_all_returns_same_feed(self, item_store: ItemStore):
        assert item_store.fetch_all() is item_store.fetch_all()

    def test_subscribe_delivers_current_snapshot(self, item_store: ItemStore):
        item_store.insert("Salt")
        recorder = SnapshotRecorder()

        item_store.fetch_all().subscribe(recorder)

        assert len(recorder.snapshots) == 1
        assert recorder.latest_names == ["Salt"]

    def test_insert_and_delete_publish_snapshots(self, item_store: ItemStore):
        recorder = SnapshotRecorder()
        item_store.fetch_all().subscribe(recorder)

        oil = item_store.insert("Oil")
        item_store.insert("Vinegar")
        item_store.delete(oil)

        assert [[item.name for item in snapshot] for snapshot in recorder.snapshots] == [
            [],
            ["Oil"],
            ["Oil", "Vinegar"],
            ["Vinegar"],
        ]

    def test_noop_delete_publishes_nothing(self, item_store: ItemStore):
        recorder = SnapshotRecorder()
        item_store.fetch_all().subscribe(recorder)

        item_store.delete(ItemSchema(id=42, name="Nothing"))

        assert len(recorder.snapshots) == 1

    def test_all_subscribers_receive_snapshots(self, item_store: ItemStore):
        first = SnapshotRecorder()
        second = SnapshotRecorder()
        item_store.fetch_all().subscribe(first)
        item_store.fetch_all().subscribe(second)

        item_store.insert("Pepper")

        assert first.latest_names == ["Pepper"]
        assert second.latest_names == ["Pepper"]

    def test_resubscribe_yields_current_snapshot(self, item_store: ItemStore):
        recorder = SnapshotRecorder()
        subscription = item_store.fetch_all().subscribe(recorder)
        subscription.dispose()
        item_store.insert("Flour")

        assert recorder.latest_names == []

        fresh = SnapshotRecorder()
        item_store.fetch_all().subscribe(fresh)

        assert fresh.latest_names == ["Flour"]

    def test_insert_during_subscribe_is_not_overtaken(
        self, item_store: ItemStore, monkeypatch: pytest.MonkeyPatch
    ):
        feed = item_store.fetch_all()
        read_snapshot = feed._loader
        writers: list[threading.Thread] = []

        def read_then_race_an_insert():
            snapshot = read_snapshot()
            writer = threading.Thread(target=item_store.insert, args=("Milk",))
            writer.start()
            writer.join(timeout=0.2)
            writers.append(writer)
            return snapshot

        monkeypatch.setattr(feed, "_loader", read_then_race_an_insert)
        recorder = SnapshotRecorder()

        feed.subscribe(recorder)
        writers[0].join(timeout=2.0)

        assert [[item.name for item in snapshot] for snapshot in recorder.snapshots] == [
            [],
            ["Milk"],
        ]
        assert recorder.latest_names == [item.name for item in item_store.snapshot()]

    def test_close_ends_feed(self, item_store: ItemStore):
        recorder = SnapshotRecorder()
        subscription = item_store.fetch_all().subscribe(recorder)

        item_store.close()
        item_store.insert("Sugar")

        assert subscription.disposed
        assert len(recorder.snapshots) == 1
        with pytest.raises(InvalidOperationException):
            item_store.fetch_all().subscribe(SnapshotRecorder())

    def test_feed_closed_after_shutdown(self, item_store: ItemStore, lifecycle_coordinator):
        lifecycle_coordinator.simulate_full_shutdown()

        assert item_store.fetch_all().closed


class TestItemStoreFailures:
    """Tests for storage failures."""

    @pytest.fixture
    def broken_store(self, item_store: ItemStore, engine) -> ItemStore:
        Base.metadata.drop_all(engine)
        return item_store

    def test_insert_raises_storage_failure(self, broken_store: ItemStore):
        with pytest.raises(StorageFailure) as exc_info:
            broken_store.insert("Jam")

        assert exc_info.value.error_code == "STORAGE_FAILURE"
        assert "insert item 'Jam'" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, SQLAlchemyError)

    def test_delete_raises_storage_failure(self, broken_store: ItemStore):
        with pytest.raises(StorageFailure):
            broken_store.delete(ItemSchema(id=1, name="Jam"))

    def test_snapshot_raises_storage_failure(self, broken_store: ItemStore):
        with pytest.raises(StorageFailure):
            broken_store.snapshot()

    def test_failed_insert_publishes_nothing(self, item_store: ItemStore, engine):
        recorder = SnapshotRecorder()
        item_store.fetch_all().subscribe(recorder)
        Base.metadata.drop_all(engine)

        with pytest.raises(StorageFailure):
            item_store.insert("Honey")

        assert len(recorder.snapshots) == 1

    def test_subscribe_fails_when_table_unreadable(self, broken_store: ItemStore):
        with pytest.raises(StorageFailure):
            broken_store.fetch_all().subscribe(SnapshotRecorder())

        assert broken_store.fetch_all().subscriber_count == 0
