"""Tests for database engine and schema management."""

import pytest
from sqlalchemy import inspect, text

from shoplist.config import Settings
from shoplist.database import (
    SCHEMA_VERSION,
    check_db_connection,
    create_db_engine,
    drop_all_tables,
    get_schema_version,
    init_db,
)
from shoplist.exceptions import StorageFailure


class TestInitDb:
    def test_creates_items_table(self, engine):
        columns = {column["name"]: column for column in inspect(engine).get_columns("items")}

        assert set(columns) == {"id", "name"}
        assert columns["id"]["primary_key"]
        assert columns["name"]["nullable"] is False

    def test_stamps_schema_version(self, engine):
        assert get_schema_version(engine) == SCHEMA_VERSION == 1

    def test_is_idempotent(self, engine):
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO items (name) VALUES ('Milk')"))

        init_db(engine)

        with engine.connect() as conn:
            assert conn.execute(text("SELECT name FROM items")).scalars().all() == ["Milk"]

    def test_rejects_newer_schema(self, engine):
        with engine.begin() as conn:
            conn.execute(text("PRAGMA user_version = 2"))

        with pytest.raises(StorageFailure) as exc_info:
            init_db(engine)

        assert "newer" in exc_info.value.message


class TestEngine:
    def test_file_database_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "items.db"
        settings = Settings(database_url=f"sqlite:///{db_path}")

        engine = create_db_engine(settings)
        try:
            init_db(engine)
            assert db_path.exists()
        finally:
            engine.dispose()

    def test_check_db_connection(self, engine):
        assert check_db_connection(engine) is True

    def test_drop_all_tables_resets_schema(self, engine):
        drop_all_tables(engine)

        assert not inspect(engine).has_table("items")
        assert get_schema_version(engine) == 0

        init_db(engine)
        assert inspect(engine).has_table("items")
