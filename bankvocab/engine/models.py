"""Card and session result records plus their JSON encoding."""

import json
import math
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

CardId = Union[int, str]


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Card:
    """A single vocabulary card."""

    id: CardId
    front: str
    back: str
    flipped: bool = False
    created_at: int = 0

    def with_flipped(self, flipped: bool) -> "Card":
        return replace(self, flipped=flipped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "front": self.front,
            "back": self.back,
            "flipped": self.flipped,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        """Build a card from its stored form.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Card must be an object, got {type(data).__name__}")

        card_id = data.get("id")
        if isinstance(card_id, bool) or not isinstance(card_id, (int, str)):
            raise ValueError(f"Invalid card id: {card_id!r}")

        front = data.get("front")
        back = data.get("back")
        if not isinstance(front, str) or not isinstance(back, str):
            raise ValueError("Card front and back must be text")

        created_at = data.get("createdAt", 0)
        if (isinstance(created_at, bool) or not isinstance(created_at, (int, float))
                or (isinstance(created_at, float) and not math.isfinite(created_at))):
            raise ValueError(f"Invalid createdAt: {created_at!r}")

        return cls(
            id=card_id,
            front=front,
            back=back,
            flipped=bool(data.get("flipped", False)),
            created_at=int(created_at),
        )


@dataclass(frozen=True)
class SessionResult:
    """Immutable record of a finished review session."""

    id: int
    created_at: int
    size: int
    score: int
    cards: Tuple[Card, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any sequence but always store a tuple
        object.__setattr__(self, "cards", tuple(self.cards))
        if self.size != len(self.cards):
            raise ValueError(f"Result size {self.size} does not match {len(self.cards)} cards")
        if not 0 <= self.score <= self.size:
            raise ValueError(f"Score {self.score} outside [0, {self.size}]")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "size": self.size,
            "score": self.score,
            "cards": [card.to_dict() for card in self.cards],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionResult":
        if not isinstance(data, dict):
            raise ValueError(f"Result must be an object, got {type(data).__name__}")

        for key in ("id", "createdAt", "size", "score"):
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Invalid {key}: {value!r}")

        raw_cards = data.get("cards")
        if not isinstance(raw_cards, list):
            raise ValueError("Result cards must be a list")

        return cls(
            id=data["id"],
            created_at=data["createdAt"],
            size=data["size"],
            score=data["score"],
            cards=tuple(Card.from_dict(c) for c in raw_cards),
        )


def _decode_list(text: Optional[str]) -> List[Any]:
    """Parse text that must hold a JSON array."""
    if text is None:
        raise ValueError("No data")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Not valid JSON: {e}") from e
    if not isinstance(parsed, list):
        raise ValueError(f"Expected a list, got {type(parsed).__name__}")
    return parsed


def encode_cards(cards: Sequence[Card]) -> str:
    return json.dumps([card.to_dict() for card in cards])


def decode_cards(text: str) -> List[Card]:
    return [Card.from_dict(item) for item in _decode_list(text)]


def encode_results(results: Sequence[SessionResult]) -> str:
    return json.dumps([result.to_dict() for result in results])


def decode_results(text: str) -> List[SessionResult]:
    return [SessionResult.from_dict(item) for item in _decode_list(text)]
