from __future__ import annotations

from typing import List, Optional

import logging

from .models import BadgeDocument

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class History:
    """
    Linear undo/redo history of document snapshots.

    - snapshots are deep copies, so editing the live document never
      changes a recorded state (and restoring hands back a fresh copy)
    - recording after an undo discards every redo state
    - at most ``limit`` snapshots are kept; the oldest fall off first
    - ``cursor`` is always a valid index into the snapshots
    """

    def __init__(self, initial: Optional[BadgeDocument] = None, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = int(limit)
        self._snapshots: List[BadgeDocument] = [(initial or BadgeDocument()).clone()]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> BadgeDocument:
        """Copy of the snapshot under the cursor."""
        return self._snapshots[self._cursor].clone()

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def record(self, document: BadgeDocument) -> None:
        # drop the redo branch, append, then keep only the newest `limit`
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(document.clone())
        if len(self._snapshots) > self.limit:
            del self._snapshots[:-self.limit]
        self._cursor = len(self._snapshots) - 1

    def undo(self) -> Optional[BadgeDocument]:
        """Step back; returns the restored document, or None at the oldest state."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        logger.debug("Undo -> snapshot %d/%d", self._cursor + 1, len(self._snapshots))
        return self.current

    def redo(self) -> Optional[BadgeDocument]:
        """Step forward; returns the restored document, or None at the newest state."""
        if not self.can_redo():
            return None
        self._cursor += 1
        logger.debug("Redo -> snapshot %d/%d", self._cursor + 1, len(self._snapshots))
        return self.current

    def reset(self, document: Optional[BadgeDocument] = None) -> None:
        """Forget everything and start over from *document*."""
        self._snapshots = [(document or BadgeDocument()).clone()]
        self._cursor = 0
