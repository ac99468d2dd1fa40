"""Local mirror of the signed-in user's remote card collection."""

import logging
from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .errors import RemoteStoreError
from .models import Card, CardId
from .remote import CardStore, SnapshotEvent, Subscription

logger = logging.getLogger(__name__)


class CardMirror(QObject):
    """Read-mostly view of one scope's cards, fed by the remote change-feed.

    Writes go to the remote store and are never applied locally; the mirror
    only changes when a snapshot for the active scope arrives.
    """

    # Signals
    cards_changed = Signal(object)  # tuple of Card
    error_occurred = Signal(str)  # error_message

    def __init__(self, store: CardStore):
        super().__init__()
        self.store = store
        self.last_error: Optional[str] = None
        self._scope: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._cards: Tuple[Card, ...] = ()
        self._generation = 0

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    @property
    def cards(self) -> Tuple[Card, ...]:
        return self._cards

    @property
    def total_cards(self) -> int:
        return len(self._cards)

    def find(self, card_id: CardId) -> Optional[Card]:
        for card in self._cards:
            if card.id == card_id:
                return card
        return None

    # --- subscription management ---

    def subscribe(self, scope: str) -> Subscription:
        """Start following scope's change-feed, cancelling any other feed."""
        if (self._subscription is not None and self._subscription.active
                and self._scope == scope):
            return self._subscription

        self.unsubscribe()
        self._scope = scope
        generation = self._generation
        self._subscription = self.store.subscribe(
            scope, lambda event: self._deliver(generation, event))
        logger.debug("Subscribed to cards for %s", scope)
        return self._subscription

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            logger.debug("Cancelled card subscription for %s", self._scope)
        self._subscription = None
        self._scope = None
        self._generation += 1

    def clear(self) -> None:
        self._cards = ()
        self.last_error = None
        self.cards_changed.emit(self._cards)

    def _deliver(self, generation: int, event: SnapshotEvent) -> None:
        # Emissions from an earlier subscription to the same scope are stale too
        if generation != self._generation:
            logger.debug("Dropping snapshot from cancelled subscription to %s", event.scope)
            return
        self.on_snapshot(event)

    def on_snapshot(self, event: SnapshotEvent) -> None:
        """Replace the mirror with an authoritative snapshot."""
        if (self._subscription is None or not self._subscription.active
                or event.scope != self._scope):
            logger.debug("Dropping stale snapshot for %s", event.scope)
            return

        # sorted() is stable, so equal timestamps keep feed order
        self._cards = tuple(sorted(event.cards, key=lambda c: c.created_at, reverse=True))
        self.cards_changed.emit(self._cards)

    # --- mutation requests ---

    def add(self, front: str, back: str) -> bool:
        """Request a new card. Returns False when nothing was sent."""
        front = front.strip()
        back = back.strip()
        if not front or not back:
            return False
        return self._request("add", lambda scope, on_error: self.store.add(
            scope, front, back, on_error=on_error))

    def toggle(self, card_id: CardId) -> bool:
        card = self.find(card_id)
        if card is None:
            return False
        return self._request("toggle", lambda scope, on_error: self.store.update(
            scope, card_id, {"flipped": not card.flipped}, on_error=on_error))

    def delete(self, card_id: CardId) -> bool:
        if self.find(card_id) is None:
            return False
        return self._request("delete", lambda scope, on_error: self.store.delete(
            scope, card_id, on_error=on_error))

    def _request(self, action: str, send) -> bool:
        scope = self._scope
        if scope is None:
            logger.debug("Ignoring %s request with no active scope", action)
            return False

        def on_error(error: Exception) -> None:
            # Failures of a previous user's requests are not shown to the next one
            if self._scope == scope:
                self._report_error(error)
            else:
                logger.debug("Dropping %s failure for stale scope %s", action, scope)

        try:
            send(scope, on_error)
        except RemoteStoreError as e:
            self._report_error(e)
        return True

    def _report_error(self, error: Exception) -> None:
        logger.warning("Card request failed: %s", error)
        self.last_error = str(error)
        self.error_occurred.emit(self.last_error)
