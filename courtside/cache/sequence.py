"""
Per-key request sequence numbers.

A caller takes a token before starting work and checks it is still the
latest one before publishing the result; a newer request for the same key
(e.g. a forced refresh) makes older in-flight results obsolete.

Tokens come from one counter shared by all keys, so a key that was
forgotten or evicted never hands out a token an older request still holds.
"""
import itertools
import threading
from typing import Dict, Optional


class RequestSequence:
    def __init__(self, max_keys: Optional[int] = None):
        """
        Args:
            max_keys: Keys tracked at most; the least recently issued key is
                dropped beyond that, which only makes its in-flight token stale
        """
        self._latest: Dict[str, int] = {}
        self._tokens = itertools.count(1)
        self._max_keys = max_keys
        self._lock = threading.Lock()

    def next(self, key: str) -> int:
        with self._lock:
            token = next(self._tokens)
            self._latest.pop(key, None)
            self._latest[key] = token
            if self._max_keys is not None:
                while len(self._latest) > self._max_keys:
                    del self._latest[next(iter(self._latest))]
            return token

    def current(self, key: str) -> int:
        with self._lock:
            return self._latest.get(key, 0)

    def is_current(self, key: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(key) == token

    def forget(self, key: str) -> None:
        with self._lock:
            self._latest.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)
