"""Mirror observable state into the key-value store."""

import logging
from typing import Any, Callable

from .errors import StorageError

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """Keeps one storage key in sync with a piece of observable state.

    The state holder exposes a Qt signal that carries the new value on every
    change. Once bound, each emission is encoded and written to the store
    synchronously. Loading never raises: a missing or undecodable value
    falls back to ``default()``.
    """

    def __init__(self, store, key: str,
                 encode: Callable[[Any], str],
                 decode: Callable[[str], Any],
                 default: Callable[[], Any]):
        self.store = store
        self.key = key
        self.encode = encode
        self.decode = decode
        self.default = default
        self._signal = None

    def load(self) -> Any:
        """Read and decode the stored value, or return the default."""
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.warning("Could not read %s: %s", self.key, e)
            return self.default()

        if raw is None:
            return self.default()

        try:
            return self.decode(raw)
        except (ValueError, TypeError, KeyError, OverflowError, RecursionError) as e:
            logger.warning("Discarding corrupted data under %s: %s", self.key, e)
            return self.default()

    def save(self, value: Any) -> None:
        """Encode value and write it under the key."""
        try:
            self.store.set(self.key, self.encode(value))
        except StorageError as e:
            # In-memory state stays authoritative
            logger.warning("Could not persist %s: %s", self.key, e)

    def bind(self, signal) -> None:
        """Write on every emission of signal."""
        self.unbind()
        signal.connect(self.save)
        self._signal = signal

    def unbind(self) -> None:
        if self._signal is not None:
            self._signal.disconnect(self.save)
            self._signal = None

    @property
    def bound(self) -> bool:
        return self._signal is not None
