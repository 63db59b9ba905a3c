"""Rotating pool of YouTube API keys."""

import logging
import threading
from collections.abc import Sequence

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class CredentialPool:
    """
    Ordered API keys with a cursor to the active one.

    The cursor only moves when the ingestion loop reports quota exhaustion.
    Rotation wraps to the first key after the last, so rotating len(pool)
    times returns to the starting key.
    """

    def __init__(self, api_keys: Sequence[str], start_index: int = 0):
        """
        Initialize the pool.

        Args:
            api_keys: Keys in rotation order
            start_index: Position of the initially active key

        Raises:
            ConfigurationError: If no keys are given
        """
        if not api_keys:
            raise ConfigurationError("CredentialPool needs at least one API key")

        self._keys = tuple(api_keys)
        self._index = start_index % len(self._keys)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def index(self) -> int:
        """Position of the active key."""
        return self._index

    def current(self) -> str:
        """Return the active key."""
        with self._lock:
            return self._keys[self._index]

    def rotate(self) -> str:
        """Advance to the next key (wrapping) and return it."""
        with self._lock:
            self._index = (self._index + 1) % len(self._keys)
            logger.info(f"Rotated to API key {self._index + 1}/{len(self._keys)}")
            return self._keys[self._index]
