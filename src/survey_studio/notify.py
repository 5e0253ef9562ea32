from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol


logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: str
    title: str
    description: str = ""

    @property
    def is_error(self) -> bool:
        return self.level == ERROR


class Notifier(Protocol):
    def notify(self, note: Notification) -> None:
        ...


class LoggingNotifier:
    """Headless sink: user-visible notifications end up in the log."""

    def notify(self, note: Notification) -> None:
        level = logging.WARNING if note.is_error else logging.INFO
        logger.log(level, "%s: %s", note.title, note.description)


class CollectingNotifier:
    """Keeps notifications in memory until drained; the default sink of an editing session."""

    def __init__(self) -> None:
        self.items: List[Notification] = []

    def notify(self, note: Notification) -> None:
        self.items.append(note)

    def drain(self) -> List[Notification]:
        items, self.items = self.items, []
        return items
