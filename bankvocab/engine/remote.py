"""Remote card store interface and an in-memory implementation."""

import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from .errors import RemoteStoreError
from .models import Card, CardId, now_ms

logger = logging.getLogger(__name__)

ErrorCallback = Optional[Callable[[Exception], None]]


@dataclass(frozen=True)
class SnapshotEvent:
    """Full contents of one scope's collection, newest first."""

    scope: str
    cards: Tuple[Card, ...]


class Subscription:
    """Handle for a live query. Cancelling is immediate and idempotent."""

    def __init__(self, scope: str, on_cancel: Optional[Callable[["Subscription"], None]] = None):
        self.scope = scope
        self.active = True
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_cancel is not None:
            self._on_cancel(self)
            self._on_cancel = None

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.scope} {state}>"


class CardStore(ABC):
    """Per-scope collection of card documents with a live query."""

    @abstractmethod
    def subscribe(self, scope: str, callback: Callable[[SnapshotEvent], None]) -> Subscription:
        """Deliver full snapshots of scope's cards to callback until cancelled."""

    @abstractmethod
    def add(self, scope: str, front: str, back: str, on_error: ErrorCallback = None) -> None:
        """Request creation of a card document."""

    @abstractmethod
    def update(self, scope: str, card_id: CardId, fields: Dict[str, Any],
               on_error: ErrorCallback = None) -> None:
        """Request an update of selected card fields."""

    @abstractmethod
    def delete(self, scope: str, card_id: CardId, on_error: ErrorCallback = None) -> None:
        """Request deletion of a card document."""


class InMemoryCardStore(CardStore):
    """Card store held in memory with deferred, ordered delivery.

    Requests and snapshot emissions are queued and only take effect when
    ``flush()`` runs, the way a network round trip completes on a later
    event. A snapshot already queued for a subscriber is still delivered
    after that subscriber cancels.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self.clock = clock
        self.documents: Dict[str, Dict[CardId, Card]] = {}
        self.failing = False
        self._listeners: Dict[str, List[Tuple[Subscription, Callable]]] = {}
        self._pending: Deque[Callable[[], None]] = deque()

    # --- live query ---

    def subscribe(self, scope: str, callback: Callable[[SnapshotEvent], None]) -> Subscription:
        subscription = Subscription(scope, self._remove_listener)
        self._listeners.setdefault(scope, []).append((subscription, callback))
        # Initial snapshot, like a live query's first result
        event = self._snapshot(scope)
        self._pending.append(lambda: callback(event))
        return subscription

    def _remove_listener(self, subscription: Subscription) -> None:
        listeners = self._listeners.get(subscription.scope, [])
        self._listeners[subscription.scope] = [
            (sub, cb) for sub, cb in listeners if sub is not subscription
        ]

    def listener_count(self, scope: Optional[str] = None) -> int:
        if scope is not None:
            return len(self._listeners.get(scope, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def _snapshot(self, scope: str) -> SnapshotEvent:
        cards = sorted(self.documents.get(scope, {}).values(),
                       key=lambda c: c.created_at, reverse=True)
        return SnapshotEvent(scope=scope, cards=tuple(cards))

    def _emit(self, scope: str) -> None:
        event = self._snapshot(scope)
        for _subscription, callback in list(self._listeners.get(scope, [])):
            self._pending.append(lambda cb=callback: cb(event))

    # --- writes ---

    def add(self, scope: str, front: str, back: str, on_error: ErrorCallback = None) -> None:
        def apply():
            card = Card(id=uuid.uuid4().hex, front=front, back=back,
                        flipped=False, created_at=self.clock())
            self.documents.setdefault(scope, {})[card.id] = card
        self._pending.append(lambda: self._complete(scope, apply, on_error))

    def update(self, scope: str, card_id: CardId, fields: Dict[str, Any],
               on_error: ErrorCallback = None) -> None:
        def apply():
            docs = self.documents.get(scope, {})
            if card_id not in docs:
                raise RemoteStoreError(f"No card {card_id} in {scope}")
            current = docs[card_id].to_dict()
            current.update(fields)
            docs[card_id] = Card.from_dict(current)
        self._pending.append(lambda: self._complete(scope, apply, on_error))

    def delete(self, scope: str, card_id: CardId, on_error: ErrorCallback = None) -> None:
        def apply():
            docs = self.documents.get(scope, {})
            if card_id not in docs:
                raise RemoteStoreError(f"No card {card_id} in {scope}")
            del docs[card_id]
        self._pending.append(lambda: self._complete(scope, apply, on_error))

    def _complete(self, scope: str, apply: Callable[[], None], on_error: ErrorCallback) -> None:
        try:
            if self.failing:
                raise RemoteStoreError("Remote store unavailable")
            apply()
        except RemoteStoreError as e:
            logger.debug("Write to %s failed: %s", scope, e)
            if on_error is not None:
                on_error(e)
            return
        self._emit(scope)

    # --- delivery ---

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> int:
        """Deliver queued completions and snapshots in order.

        Returns:
            Number of queued items processed
        """
        processed = 0
        while self._pending:
            self._pending.popleft()()
            processed += 1
        return processed
