"""Shopping list application factory."""

import logging

from shoplist.config import Settings
from shoplist.database import init_db
from shoplist.services.container import ServiceContainer
from shoplist.utils.dispatchers import DispatcherProtocol
from shoplist.utils.lifecycle_coordinator import LifecycleEvent

logger = logging.getLogger(__name__)


def create_app(
    settings: "Settings | None" = None,
    dispatcher: "DispatcherProtocol | None" = None,
) -> ServiceContainer:
    """Create the service container and make sure the item table exists.

    Args:
        settings: Application settings; loaded from the environment when omitted
        dispatcher: Delivery context for item observers; defaults to inline delivery
    """
    if settings is None:
        settings = Settings.load()

    settings.validate_config()

    container = ServiceContainer()
    container.config.override(settings)
    if dispatcher is not None:
        container.dispatcher.override(dispatcher)

    init_db(container.engine())

    lifecycle_coordinator = container.lifecycle_coordinator()

    def dispose_engine(event: LifecycleEvent) -> None:
        if event == LifecycleEvent.AFTER_SHUTDOWN:
            container.engine().dispose()

    lifecycle_coordinator.register_lifecycle_notification(dispose_engine)

    logger.debug(f"Application created (env={settings.app_env})")
    return container
