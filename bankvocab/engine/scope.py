"""Identity scope transitions and the cross-component reset protocol."""

import logging
from typing import Any, Optional

from PySide6.QtCore import QObject, Signal

from .history import HistoryLedger
from .mirror import CardMirror
from .session import SessionEngine

logger = logging.getLogger(__name__)


def scope_for(user: Any) -> Optional[str]:
    """Scope for an identity-provider user: None, a user id, or an object with ``id``."""
    if user is None:
        return None
    if isinstance(user, str):
        return user or None
    return getattr(user, "id", None) or None


class ScopeManager(QObject):
    """Owns the active scope and re-points per-user state when it changes.

    Per-user state of the old scope is always torn down (subscription
    cancelled, mirror, ledger and session cleared) before the new scope's
    feed and history are installed.
    """

    # Signals
    scope_changed = Signal(object)  # new scope, None when signed out

    def __init__(self, mirror: CardMirror, history: HistoryLedger, session: SessionEngine):
        super().__init__()
        self.mirror = mirror
        self.history = history
        self.session = session
        self._scope: Optional[str] = None
        self._started = False

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    def start(self) -> None:
        """Load the signed-out history before any identity event arrives."""
        if self._started:
            return
        self._started = True
        if self._scope is None:
            self.history.load(None)

    def on_user_changed(self, user: Any) -> None:
        self.set_scope(scope_for(user))

    def set_scope(self, scope: Optional[str]) -> None:
        if not self._started:
            self.start()
        previous = self._scope
        if scope == previous:
            return

        if previous is not None:
            self._tear_down(previous)

        self._scope = scope
        if scope is None:
            self.history.load(None)
        else:
            # Signed-out work in progress carries over into a first sign-in
            self.mirror.subscribe(scope)
            self.history.load(scope)

        logger.info("Scope changed from %s to %s", previous or "anonymous", scope or "anonymous")
        self.scope_changed.emit(scope)

    def _tear_down(self, scope: str) -> None:
        self.mirror.unsubscribe()
        self.mirror.clear()
        # Detach first so clearing does not overwrite the stored history
        self.history.detach()
        self.history.clear()
        self.session.reset()
        logger.debug("Cleared state for %s", scope)
