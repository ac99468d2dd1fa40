"""Review session state machine."""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from PySide6.QtCore import QObject, Signal

from .history import HistoryLedger
from .models import Card, SessionResult, now_ms

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class PromptSide(Enum):
    """Which side of the card is shown; the other side is the answer."""
    FRONT = "front"
    BACK = "back"


def normalize_answer(text: str) -> str:
    return text.strip().lower()


@dataclass
class SessionQuestion:
    """A card as asked during a session, with its answer state."""

    card: Card
    prompt_side: Optional[PromptSide] = None
    revealed: bool = False
    correct: Optional[bool] = None
    user_answer: str = ""

    @property
    def prompt(self) -> str:
        return self.card.back if self.prompt_side is PromptSide.BACK else self.card.front

    @property
    def expected(self) -> str:
        return self.card.front if self.prompt_side is PromptSide.BACK else self.card.back


class SessionEngine(QObject):
    """Runs one review session at a time.

    Idle -> InProgress -> Finished. A finished session only leaves Finished
    through a fresh ``start_test``. Finishing records an immutable
    SessionResult in the history ledger; abandoned sessions are never
    recorded.
    """

    # Signals
    state_changed = Signal(object)  # SessionState
    question_changed = Signal(object)  # SessionQuestion or None
    finished = Signal(object)  # SessionResult, None for replays and empty pools

    def __init__(self, history: HistoryLedger, rng: Optional[random.Random] = None,
                 clock: Callable[[], int] = now_ms,
                 timer: Callable[[], float] = time.monotonic):
        super().__init__()
        self.history = history
        self.rng = rng or random.Random()
        self.clock = clock
        self.timer = timer
        self._reset_fields()

    def _reset_fields(self) -> None:
        self.state = SessionState.IDLE
        self.questions: Tuple[SessionQuestion, ...] = ()
        self.current_index = 0
        self.score = 0
        self.result: Optional[SessionResult] = None
        self.replay = False
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Optional[SessionQuestion]:
        if self.state is SessionState.IN_PROGRESS:
            return self.questions[self.current_index]
        return None

    @property
    def elapsed(self) -> float:
        """Seconds spent in the session so far (or in total once finished)."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else self.timer()
        return end - self.started_at

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        self.state_changed.emit(state)

    def reset(self) -> None:
        """Discard any session, in progress or finished, and go back to Idle."""
        self._reset_fields()
        self.state_changed.emit(self.state)
        self.question_changed.emit(None)

    def start_test(self, pool: Sequence[Card], requested_size: int,
                   fixed_cards: Optional[Sequence[Card]] = None,
                   fixed_score: int = 0) -> None:
        """Start a new session, abandoning any session in progress.

        Args:
            pool: Cards to sample from
            requested_size: Desired number of questions, clamped to [1, len(pool)]
            fixed_cards: Replay these cards exactly, read-only
            fixed_score: Score shown for a replay

        Raises:
            ValueError: If fixed_score is outside [0, len(fixed_cards)]
        """
        if fixed_cards is not None and not 0 <= fixed_score <= len(fixed_cards):
            raise ValueError(f"Score {fixed_score} outside [0, {len(fixed_cards)}]")

        if self.state is SessionState.IN_PROGRESS:
            logger.debug("Abandoning session at question %d of %d",
                         self.current_index + 1, self.size)
        self._reset_fields()
        self.started_at = self.timer()

        if fixed_cards is not None:
            self.questions = tuple(
                SessionQuestion(card=card, revealed=True) for card in fixed_cards
            )
            self.score = fixed_score
            self.replay = True
            self._finish_without_record()
            return

        pool = list(pool)
        if not pool:
            self._finish_without_record()
            return

        size = max(1, min(requested_size, len(pool)))
        self.rng.shuffle(pool)
        self.questions = tuple(SessionQuestion(card=card) for card in pool[:size])
        self._set_state(SessionState.IN_PROGRESS)
        self._enter_question(0)

    def _enter_question(self, index: int) -> None:
        self.current_index = index
        question = self.questions[index]
        # Drawn when shown, independently for every question
        question.prompt_side = PromptSide.FRONT if self.rng.random() < 0.5 else PromptSide.BACK
        self.question_changed.emit(question)

    def submit_answer(self, text: str) -> Optional[bool]:
        """Grade text against the current question.

        Returns:
            Whether the answer was correct, or None if nothing was graded
        """
        question = self.current
        if question is None or question.revealed:
            return None

        correct = normalize_answer(text) == normalize_answer(question.expected)
        question.revealed = True
        question.correct = correct
        question.user_answer = text
        if correct:
            self.score += 1
        self.question_changed.emit(question)
        return correct

    def next_card(self) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            return
        if self.current_index >= self.size - 1:
            self._finalize()
        else:
            self._enter_question(self.current_index + 1)

    def _finish_without_record(self) -> None:
        self.finished_at = self.timer()
        self._set_state(SessionState.FINISHED)
        self.question_changed.emit(None)
        self.finished.emit(None)

    def _finalize(self) -> None:
        if self.state is SessionState.FINISHED:
            return

        cards = tuple(q.card.with_flipped(False) for q in self.questions)
        result = SessionResult(
            id=self.history.next_id,
            created_at=self.clock(),
            size=len(cards),
            score=self.score,
            cards=cards,
        )
        self.history.insert(result)
        self.result = result
        self.finished_at = self.timer()
        self._set_state(SessionState.FINISHED)
        self.question_changed.emit(None)
        self.finished.emit(result)
        logger.debug("Session %d finished: %d/%d", result.id, result.score, result.size)

    def replay_result(self, result: SessionResult) -> None:
        """Show a past result read-only."""
        self.start_test((), result.size, fixed_cards=result.cards, fixed_score=result.score)
