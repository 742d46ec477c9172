"""Command-line front end for the shopping list."""

import argparse
import logging
import sys
from collections.abc import Iterable
from typing import NoReturn, TextIO

from dotenv import load_dotenv

from shoplist import create_app
from shoplist.config import Settings
from shoplist.database import (
    SCHEMA_VERSION,
    check_db_connection,
    drop_all_tables,
    get_schema_version,
    init_db,
)
from shoplist.exceptions import BusinessLogicException, ConfigurationError, ValidationException
from shoplist.presenter import ListPresenter, ListView, validate_item_name
from shoplist.schemas.item_schema import ItemSchema
from shoplist.schemas.operation_schema import ItemOperationFailure
from shoplist.services.container import ServiceContainer
from shoplist.utils.dispatchers import QueueDispatcher

SHELL_HELP = """Commands:
  <text>     add an item
  rm <id>    remove the item with that id
  ls         show the list again
  help       show this help
  quit       leave the shell"""


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shoplist",
        description="Shopping list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable logging output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create the item table")
    init_parser.add_argument("--recreate", action="store_true")
    init_parser.add_argument("--yes-i-am-sure", action="store_true")

    subparsers.add_parser("list", help="Show all items")

    add_parser = subparsers.add_parser("add", help="Add an item")
    add_parser.add_argument("name")

    remove_parser = subparsers.add_parser("remove", help="Remove an item by id")
    remove_parser.add_argument("id", type=int)

    subparsers.add_parser("shell", help="Interactive shopping list")

    return parser


def format_items(items: list[ItemSchema]) -> str:
    if not items:
        return "No items."
    return "\n".join(f"{item.id:>4}  {item.name}" for item in items)


class ConsoleView(ListView):
    """ListView that writes to a text stream."""

    def __init__(self, out: TextIO):
        self.out = out
        self.items: list[ItemSchema] = []

    def show_items(self, items: list[ItemSchema]) -> None:
        self.items = items
        print(format_items(items), file=self.out)

    def show_input_error(self, message: str) -> None:
        print(f"Error: {message}", file=self.out)

    def clear_input(self) -> None:
        pass

    def find(self, item_id: int) -> ItemSchema | None:
        return next((item for item in self.items if item.id == item_id), None)


def _collect_failures(container: ServiceContainer) -> list[ItemOperationFailure]:
    failures: list[ItemOperationFailure] = []
    container.list_mediator().register_on_failure(failures.append)
    return failures


def handle_init_db(
    container: ServiceContainer, recreate: bool = False, confirmed: bool = False
) -> None:
    engine = container.engine()

    if not check_db_connection(engine):
        print("Cannot connect to database.", file=sys.stderr)
        sys.exit(1)

    print(f"Using database: {container.config().database_url}")

    if recreate and not confirmed:
        print("--recreate requires --yes-i-am-sure flag", file=sys.stderr)
        sys.exit(1)

    if recreate:
        print("Recreating item table from scratch...")
        drop_all_tables(engine)
        init_db(engine)

    print(f"Database schema version: {get_schema_version(engine)} (expected {SCHEMA_VERSION})")


def handle_list(container: ServiceContainer) -> None:
    print(format_items(container.item_store().snapshot()))


def handle_add(container: ServiceContainer, name: str) -> None:
    try:
        name = validate_item_name(name)
    except ValidationException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    failures = _collect_failures(container)
    mediator = container.list_mediator()
    mediator.add_item(name)
    mediator.wait_until_idle()

    if failures:
        print(f"Error: {failures[0].message}", file=sys.stderr)
        sys.exit(1)

    print(f"Added {name!r}")


def handle_remove(container: ServiceContainer, item_id: int) -> None:
    item = next(
        (item for item in container.item_store().snapshot() if item.id == item_id),
        None,
    )
    if item is None:
        print(f"Error: item {item_id} was not found", file=sys.stderr)
        sys.exit(1)

    failures = _collect_failures(container)
    mediator = container.list_mediator()
    mediator.remove_item(item)
    mediator.wait_until_idle()

    if failures:
        print(f"Error: {failures[0].message}", file=sys.stderr)
        sys.exit(1)

    print(f"Removed {item.name!r}")


def run_shell(
    container: ServiceContainer,
    dispatcher: QueueDispatcher,
    lines: Iterable[str],
    out: TextIO,
) -> None:
    """Drive the presenter from lines of user input.

    The calling thread plays the UI thread: it is the only one that drains
    the dispatcher, so every view update happens here.
    """
    mediator = container.list_mediator()
    view = ConsoleView(out)
    presenter = ListPresenter(mediator, view)
    mediator.register_on_failure(
        lambda failure: dispatcher.dispatch(view.show_input_error, failure.message)
    )

    presenter.start()
    dispatcher.process_pending()
    print(SHELL_HELP, file=out)

    try:
        for line in lines:
            command = line.strip()

            if command in ("quit", "exit"):
                break
            elif command == "help":
                print(SHELL_HELP, file=out)
            elif command == "ls":
                print(format_items(view.items), file=out)
            elif command.startswith("rm "):
                arg = command[3:].strip()
                item = view.find(int(arg)) if arg.isdigit() else None
                if item is None:
                    view.show_input_error(f"item {arg} was not found")
                else:
                    presenter.remove(item)
            else:
                presenter.submit(command)

            mediator.wait_until_idle()
            dispatcher.process_pending()
    finally:
        presenter.stop()


def _read_lines() -> Iterable[str]:
    while True:
        try:
            yield input("> ")
        except (EOFError, KeyboardInterrupt):
            return


def main() -> NoReturn:
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        settings = Settings.load()
        settings.validate_config()
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    dispatcher = QueueDispatcher() if args.command == "shell" else None

    try:
        container = create_app(settings, dispatcher=dispatcher)
    except (ConfigurationError, BusinessLogicException) as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    lifecycle_coordinator = container.lifecycle_coordinator()

    try:
        if args.command == "init-db":
            handle_init_db(
                container=container,
                recreate=args.recreate,
                confirmed=args.yes_i_am_sure,
            )
        elif args.command == "list":
            handle_list(container)
        elif args.command == "add":
            handle_add(container, args.name)
        elif args.command == "remove":
            handle_remove(container, args.id)
        elif args.command == "shell":
            run_shell(container, dispatcher, _read_lines(), sys.stdout)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            sys.exit(1)
    except BusinessLogicException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        lifecycle_coordinator.shutdown()

    sys.exit(0)


if __name__ == "__main__":
    main()
