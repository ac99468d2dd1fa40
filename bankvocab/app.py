"""Application state holder wiring auth, cards, sessions and history."""

import random
from typing import Callable, Optional, Tuple

from .engine.db import KeyValueStore
from .engine.history import HistoryLedger
from .engine.local import LocalCardCollection
from .engine.mirror import CardMirror
from .engine.models import Card, CardId, SessionResult, now_ms
from .engine.remote import CardStore, InMemoryCardStore
from .engine.scope import ScopeManager
from .engine.session import SessionEngine
from .services.auth import AuthService
from .utils.config import ConfigManager


class StudyApp:
    """Everything a presentation layer needs, with no rendering of its own.

    Signed in, cards come from the remote store through the mirror; signed
    out, from the local collection. Identity changes from the auth service
    drive the scope manager.

    The default remote is an ``InMemoryCardStore``, which queues snapshots
    and write completions until ``sync()`` is called. A host event loop
    should call it after each card action.
    """

    def __init__(self, config: Optional[ConfigManager] = None,
                 store=None,
                 remote: Optional[CardStore] = None,
                 auth: Optional[AuthService] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], int] = now_ms):
        if config is None:
            from .utils.config import config as default_config
            config = default_config
        self.config = config

        self.store = store if store is not None else KeyValueStore(config.get_data_path())
        self.remote = remote if remote is not None else InMemoryCardStore(clock)
        self.auth = auth if auth is not None else AuthService(config.get_api_key(), self.store)

        self.local_cards = LocalCardCollection(self.store, clock)
        self.mirror = CardMirror(self.remote)
        self.history = HistoryLedger(self.store)
        self.session = SessionEngine(self.history, rng, clock)
        self.scope = ScopeManager(self.mirror, self.history, self.session)

        self.scope.start()
        self.scope.on_user_changed(self.auth.user)
        self.auth.user_changed.connect(self.scope.on_user_changed)

    # --- cards ---

    @property
    def signed_in(self) -> bool:
        return self.scope.scope is not None

    @property
    def collection(self):
        """Active card source for the current scope."""
        return self.mirror if self.signed_in else self.local_cards

    @property
    def cards(self) -> Tuple[Card, ...]:
        return self.collection.cards

    @property
    def total_cards(self) -> int:
        return self.collection.total_cards

    @property
    def card_error(self) -> Optional[str]:
        return self.mirror.last_error if self.signed_in else None

    def add_card(self, front: str, back: str) -> bool:
        return self.collection.add(front, back)

    def toggle_card(self, card_id: CardId) -> bool:
        return self.collection.toggle(card_id)

    def delete_card(self, card_id: CardId) -> bool:
        return self.collection.delete(card_id)

    # --- review sessions ---

    def start_test(self, size: Optional[int] = None) -> None:
        if size is None:
            size = self.config.get_default_test_size()
        self.session.start_test(self.cards, size)

    def submit_answer(self, text: str) -> Optional[bool]:
        return self.session.submit_answer(text)

    def next_card(self) -> None:
        self.session.next_card()

    @property
    def results(self) -> Tuple[SessionResult, ...]:
        return self.history.entries

    def replay(self, result_id: int) -> bool:
        """Show a past session read-only. Returns False if it is not in history."""
        result = self.history.get(result_id)
        if result is None:
            return False
        self.session.replay_result(result)
        return True

    # --- identity ---

    @property
    def requires_verification(self) -> bool:
        return self.auth.user is not None and not self.auth.verified

    def sign_in(self, email: str, password: str) -> bool:
        return self.auth.sign_in(email, password)

    def send_verification(self) -> bool:
        return self.auth.send_verification()

    def logout(self) -> None:
        self.auth.logout()

    def sync(self) -> int:
        """Deliver pending remote completions and snapshots.

        Stores that push from their own thread have nothing queued and
        return 0. The in-memory store delivers only here.
        """
        flush = getattr(self.remote, "flush", None)
        return flush() if flush is not None else 0

    def close(self) -> None:
        self.mirror.unsubscribe()
        self.history.detach()
        self.local_cards.persistence.unbind()
        if self.auth.persistence is not None:
            self.auth.persistence.unbind()
        self.store.close()
