# ABOUTME: User-facing notification sinks for migration progress and failures.
# ABOUTME: Notifier protocol with a logging implementation and a Rich console one.

import logging
from typing import Protocol, runtime_checkable

from rich.console import Console

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Receives short status messages meant for the user."""

    loading: bool

    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes messages to the module logger."""

    def __init__(self) -> None:
        self.loading = False
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))
        logger.info(message)

    def error(self, message: str) -> None:
        self.messages.append(("error", message))
        logger.error(message)


class ConsoleNotifier:
    """Notifier that prints to a Rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self.loading = False

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]{message}[/cyan]")

    def error(self, message: str) -> None:
        self._console.print(f"[red]{message}[/red]")
