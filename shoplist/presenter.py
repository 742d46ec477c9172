"""List presenter: renders snapshots and turns user input into mediator calls."""

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from shoplist.exceptions import ValidationException
from shoplist.schemas.item_schema import ItemCreate, ItemSchema
from shoplist.services.item_feed import Subscription
from shoplist.services.list_mediator import ListMediator

logger = logging.getLogger(__name__)

EMPTY_NAME_MESSAGE = "Item name cannot be empty"


class ListView(ABC):
    """What the presenter needs from a concrete screen."""

    @abstractmethod
    def show_items(self, items: list[ItemSchema]) -> None: ...

    @abstractmethod
    def show_input_error(self, message: str) -> None: ...

    @abstractmethod
    def clear_input(self) -> None: ...


def validate_item_name(text: str) -> str:
    """Return the cleaned item name.

    Raises:
        ValidationException: If nothing is left after stripping whitespace
    """
    try:
        return ItemCreate(name=text).name
    except ValidationError as e:
        raise ValidationException(EMPTY_NAME_MESSAGE) from e


class ListPresenter:
    """Binds a ListView to the mediator."""

    def __init__(self, mediator: ListMediator, view: ListView):
        self.mediator = mediator
        self.view = view
        self._subscription: Subscription | None = None

    def start(self) -> None:
        if self._subscription is None:
            self._subscription = self.mediator.observe_items(self.view.show_items)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def submit(self, text: str) -> bool:
        """Handle the add button.

        Returns:
            True if the item was handed to the mediator
        """
        try:
            name = validate_item_name(text)
        except ValidationException as e:
            self.view.show_input_error(e.message)
            return False

        self.mediator.add_item(name)
        self.view.clear_input()
        return True

    def remove(self, item: ItemSchema) -> None:
        self.mediator.remove_item(item)
