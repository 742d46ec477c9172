"""Database engine and schema management."""

import logging
from pathlib import Path

from sqlalchemy import MetaData, create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from shoplist.config import Settings
from shoplist.exceptions import StorageFailure
from shoplist.models import Base

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def create_db_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    options = dict(settings.sqlalchemy_engine_options)

    connect_args = dict(options.pop("connect_args", {}))
    connect_args.setdefault("check_same_thread", False)

    if url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url,
        echo=settings.db_echo,
        connect_args=connect_args,
        **options,
    )
    logger.debug(f"Created database engine for {url.render_as_string(hide_password=True)}")
    return engine


def get_schema_version(engine: Engine) -> int:
    with engine.connect() as conn:
        return int(conn.execute(text("PRAGMA user_version")).scalar() or 0)


def init_db(engine: Engine) -> None:
    """Create the item table and stamp the schema version.

    Raises:
        StorageFailure: If the database cannot be initialized or was written
            by a newer schema version.
    """
    try:
        current = get_schema_version(engine)
        if current > SCHEMA_VERSION:
            raise StorageFailure(
                "open the item database",
                f"its schema version {current} is newer than {SCHEMA_VERSION}",
            )

        Base.metadata.create_all(engine)

        if current < SCHEMA_VERSION:
            with engine.begin() as conn:
                conn.execute(text(f"PRAGMA user_version = {SCHEMA_VERSION}"))
            logger.info(f"Initialized item database at schema version {SCHEMA_VERSION}")
    except SQLAlchemyError as e:
        raise StorageFailure("initialize the item database", str(e)) from e


def check_db_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.warning(f"Checking database connection failed: {e}")
        return False


def drop_all_tables(engine: Engine) -> None:
    metadata = MetaData()
    metadata.reflect(bind=engine)
    metadata.drop_all(bind=engine)
    with engine.begin() as conn:
        conn.execute(text("PRAGMA user_version = 0"))
