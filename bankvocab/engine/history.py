"""Bounded, per-scope history of finished review sessions."""

import logging
from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .models import SessionResult, decode_results, encode_results
from .persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 4
ANONYMOUS_SCOPE = "anon"


def history_key(scope: Optional[str]) -> str:
    """Storage key holding the history for scope (None means signed out)."""
    return f"history/{scope or ANONYMOUS_SCOPE}"


class HistoryLedger(QObject):
    """Most-recent-first list of session results, capped at four entries."""

    # Signals
    changed = Signal(object)  # tuple of SessionResult

    def __init__(self, store, capacity: int = HISTORY_CAPACITY):
        super().__init__()
        self.store = store
        self.capacity = capacity
        self.persistence: Optional[PersistenceAdapter] = None
        self._entries: Tuple[SessionResult, ...] = ()
        self._next_id = 1

    @property
    def entries(self) -> Tuple[SessionResult, ...]:
        return self._entries

    @property
    def next_id(self) -> int:
        """Id for the next finished session."""
        return self._next_id

    @property
    def key(self) -> Optional[str]:
        return self.persistence.key if self.persistence else None

    def get(self, result_id: int) -> Optional[SessionResult]:
        for entry in self._entries:
            if entry.id == result_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def insert(self, result: SessionResult) -> None:
        """Prepend result, silently dropping the oldest entry past capacity."""
        self._entries = ((result,) + self._entries)[:self.capacity]
        self._next_id = max(self._next_id, result.id + 1)
        self.changed.emit(self._entries)

    def load(self, scope: Optional[str]) -> None:
        """Point the ledger at scope's storage key and restore what is there."""
        self.detach()
        self.persistence = PersistenceAdapter(
            self.store, history_key(scope),
            encode=encode_results,
            decode=decode_results,
            default=list,
        )
        loaded = self.persistence.load()
        self._entries = tuple(loaded[:self.capacity])
        self._next_id = max((entry.id for entry in loaded), default=0) + 1
        logger.debug("Loaded %d history entries from %s", len(self._entries), self.key)

        # Notify listeners before binding so the restored value is not rewritten
        self.changed.emit(self._entries)
        self.persistence.bind(self.changed)

    def detach(self) -> None:
        """Stop mirroring to the current storage key."""
        if self.persistence is not None:
            self.persistence.unbind()
            self.persistence = None

    def clear(self) -> None:
        self._entries = ()
        self._next_id = 1
        self.changed.emit(self._entries)
