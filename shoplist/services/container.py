"""Dependency injection container for the shopping list."""

from dependency_injector import containers, providers
from sqlalchemy.orm import sessionmaker

from shoplist.config import Settings
from shoplist.database import create_db_engine
from shoplist.services.item_store import ItemStore
from shoplist.services.list_mediator import ListMediator
from shoplist.utils.dispatchers import DispatcherProtocol, ImmediateDispatcher
from shoplist.utils.lifecycle_coordinator import LifecycleCoordinator


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    config = providers.Dependency(instance_of=Settings)

    engine = providers.Singleton(create_db_engine, settings=config)
    session_maker = providers.Singleton(
        sessionmaker,
        bind=engine,
        expire_on_commit=False,
    )

    # Where observers run; override with a QueueDispatcher for a UI thread
    dispatcher = providers.Dependency(
        instance_of=DispatcherProtocol,
        default=providers.Singleton(ImmediateDispatcher),
    )

    lifecycle_coordinator = providers.Singleton(
        LifecycleCoordinator,
        graceful_shutdown_timeout=config.provided.graceful_shutdown_timeout,
    )

    item_store = providers.Singleton(
        ItemStore,
        session_maker=session_maker,
        dispatcher=dispatcher,
        lifecycle_coordinator=lifecycle_coordinator,
    )

    list_mediator = providers.Singleton(
        ListMediator,
        item_store=item_store,
        lifecycle_coordinator=lifecycle_coordinator,
        max_workers=config.provided.mediator_max_workers,
    )
