from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .schema import Section


Snapshot = Tuple[Section, ...]

DEFAULT_LIMIT = 50


@dataclass(frozen=True)
class HistoryRing:
    """Snapshot-based undo/redo over a draft's sections.

    ``snapshots[cursor]`` is always the live sections value. Sections and
    questions are frozen models, so a tuple of them is a safe full copy.
    Every operation returns a new ring; ``undo``/``redo`` never push.
    """

    snapshots: Tuple[Snapshot, ...] = ((),)
    cursor: int = 0
    limit: int = field(default=DEFAULT_LIMIT, compare=False)

    @classmethod
    def start(cls, sections: Sequence[Section] = (), limit: int = DEFAULT_LIMIT) -> "HistoryRing":
        return cls(snapshots=(tuple(sections),), cursor=0, limit=max(1, limit))

    @property
    def current(self) -> Snapshot:
        return self.snapshots[self.cursor]

    @property
    def can_undo(self) -> bool:
        return self.cursor > 0

    @property
    def can_redo(self) -> bool:
        return self.cursor < len(self.snapshots) - 1

    def push(self, sections: Sequence[Section]) -> "HistoryRing":
        # Anything after the cursor is a discarded future.
        kept = self.snapshots[: self.cursor + 1] + (tuple(sections),)
        if len(kept) > self.limit:
            kept = kept[len(kept) - self.limit :]
        return HistoryRing(snapshots=kept, cursor=len(kept) - 1, limit=self.limit)

    def undo(self) -> Optional["HistoryRing"]:
        """Step back; ``None`` when there is nothing to undo."""
        if not self.can_undo:
            return None
        return HistoryRing(snapshots=self.snapshots, cursor=self.cursor - 1, limit=self.limit)

    def redo(self) -> Optional["HistoryRing"]:
        if not self.can_redo:
            return None
        return HistoryRing(snapshots=self.snapshots, cursor=self.cursor + 1, limit=self.limit)

    def __len__(self) -> int:
        return len(self.snapshots)
