"""Bounded undo/redo history of document snapshots."""

from loguru import logger

from tree_editor.config import HISTORY_LIMIT
from tree_editor.models.node import Document


class HistoryLog:
    """A linear list of snapshots with a cursor.

    Recording after an undo drops the redo future. Once the list grows past
    ``limit`` the oldest snapshot is evicted and the cursor stays on the
    newest entry. Snapshots are immutable documents, so keeping them never
    aliases the live state.
    """

    def __init__(self, *, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            msg = f"History limit must be positive, got {limit!r}"
            raise ValueError(msg)
        self.limit = limit
        self.entries: list[Document] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def current(self) -> Document | None:
        if self.index < 0:
            return None
        return self.entries[self.index]

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    def record(self, entry: Document) -> None:
        """Make ``entry`` the newest snapshot, discarding anything after the cursor."""
        dropped = len(self.entries) - (self.index + 1)
        del self.entries[self.index + 1 :]
        self.entries.append(entry)
        if len(self.entries) > self.limit:
            del self.entries[0]
            logger.debug("History full, evicted oldest snapshot")
        self.index = len(self.entries) - 1
        if dropped:
            logger.debug("History: dropped {} redo snapshot(s)", dropped)

    def reset(self, entry: Document) -> None:
        """Start over with ``entry`` as the only snapshot."""
        self.entries = [entry]
        self.index = 0

    def undo(self) -> Document | None:
        """Step back one snapshot, or return None at the oldest one."""
        if not self.can_undo:
            return None
        self.index -= 1
        return self.entries[self.index]

    def redo(self) -> Document | None:
        """Step forward one snapshot, or return None at the newest one."""
        if not self.can_redo:
            return None
        self.index += 1
        return self.entries[self.index]
