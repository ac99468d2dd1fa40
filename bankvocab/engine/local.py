"""Card collection kept only in local storage, used while signed out."""

import logging
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .models import Card, CardId, decode_cards, encode_cards, now_ms
from .persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

CARDS_KEY = "bank-vocabulary/cards"

# Starter deck shown before anything has been saved
SEED_CARDS = [
    ("Bonjour", "Hello"),
    ("Merci", "Thank you"),
    ("Banque", "Bank"),
    ("Compte courant", "Checking account"),
]


def seed_cards(clock: Callable[[], int] = now_ms) -> List[Card]:
    created_at = clock()
    return [Card(id=i, front=front, back=back, flipped=False, created_at=created_at)
            for i, (front, back) in enumerate(SEED_CARDS, start=1)]


def _decode_saved_cards(text: str) -> List[Card]:
    """Decode saved cards, rejecting collections with blank or non-numeric entries."""
    cards = decode_cards(text)
    for card in cards:
        if not card.front or not card.back:
            raise ValueError(f"Card {card.id} has an empty side")
        if not isinstance(card.id, int):
            raise ValueError(f"Local card id must be an integer, got {card.id!r}")
    return [card.with_flipped(False) for card in cards]


class LocalCardCollection(QObject):
    """Anonymous-mode cards with locally generated incrementing ids."""

    # Signals
    cards_changed = Signal(object)  # tuple of Card

    def __init__(self, store, clock: Callable[[], int] = now_ms, key: str = CARDS_KEY):
        super().__init__()
        self.clock = clock
        self.persistence = PersistenceAdapter(
            store, key,
            encode=encode_cards,
            decode=_decode_saved_cards,
            default=lambda: seed_cards(self.clock),
        )
        self._cards: Tuple[Card, ...] = tuple(self.persistence.load())
        self._next_id = max((card.id for card in self._cards), default=0)
        self.persistence.save(self._cards)
        self.persistence.bind(self.cards_changed)

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

    def _set(self, cards) -> None:
        self._cards = tuple(cards)
        self.cards_changed.emit(self._cards)

    def add(self, front: str, back: str) -> bool:
        front = front.strip()
        back = back.strip()
        if not front or not back:
            return False

        self._next_id += 1
        card = Card(id=self._next_id, front=front, back=back,
                    flipped=False, created_at=self.clock())
        self._set((card,) + self._cards)
        return True

    def toggle(self, card_id: CardId) -> bool:
        if self.find(card_id) is None:
            return False
        self._set(card.with_flipped(not card.flipped) if card.id == card_id else card
                  for card in self._cards)
        return True

    def delete(self, card_id: CardId) -> bool:
        if self.find(card_id) is None:
            return False
        self._set(card for card in self._cards if card.id != card_id)
        return True
