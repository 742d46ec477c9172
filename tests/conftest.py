"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shoplist import create_app
from shoplist.config import Settings
from shoplist.database import create_db_engine, init_db
from shoplist.services.container import ServiceContainer
from shoplist.services.item_store import ItemStore
from shoplist.services.list_mediator import ListMediator
from shoplist.utils.dispatchers import ImmediateDispatcher
from tests.testing_utils import TestLifecycleCoordinator


def _build_test_settings() -> Settings:
    """Construct base Settings object for tests."""
    settings = Settings(
        app_env="testing",
        log_level="DEBUG",
        graceful_shutdown_timeout=5,
        database_url="sqlite://",
        db_echo=False,
        mediator_max_workers=2,
    )
    # One shared in-memory connection, reachable from worker threads
    settings.set_engine_options_override({"poolclass": StaticPool})
    return settings


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with an in-memory database."""
    return _build_test_settings()


@pytest.fixture
def engine(test_settings: Settings) -> Generator[Engine, None, None]:
    """In-memory engine with the item table created."""
    engine = create_db_engine(test_settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_maker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def lifecycle_coordinator() -> TestLifecycleCoordinator:
    return TestLifecycleCoordinator()


@pytest.fixture
def item_store(
    session_maker: sessionmaker[Session], lifecycle_coordinator: TestLifecycleCoordinator
) -> ItemStore:
    return ItemStore(session_maker, ImmediateDispatcher(), lifecycle_coordinator)


@pytest.fixture
def list_mediator(
    item_store: ItemStore, lifecycle_coordinator: TestLifecycleCoordinator
) -> Generator[ListMediator, None, None]:
    mediator = ListMediator(item_store, lifecycle_coordinator, max_workers=2)
    try:
        yield mediator
    finally:
        lifecycle_coordinator.simulate_full_shutdown(timeout=5.0)


@pytest.fixture
def container(test_settings: Settings) -> Generator[ServiceContainer, None, None]:
    """Fully wired application container on an in-memory database."""
    container = create_app(test_settings)
    try:
        yield container
    finally:
        container.lifecycle_coordinator().shutdown()
