"""
Key-value storage shared by agent instances

Mirrors browser web storage: string keys to string values. The durable
medium is shared by every tab of a site; the session medium is scoped to
one tab's browsing session.
"""

import threading
from typing import Dict, Optional, Protocol


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def compare_and_set(
        self, key: str, expected: Optional[str], value: Optional[str]
    ) -> bool:
        """
        Write ``value`` only if the current value equals ``expected``.

        ``expected=None`` means "key absent"; ``value=None`` removes the key.
        """
        ...


class MemoryStorage:
    """In-process storage; share one instance between agents to model tabs"""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def compare_and_set(
        self, key: str, expected: Optional[str], value: Optional[str]
    ) -> bool:
        with self._lock:
            if self._data.get(key) != expected:
                return False
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
            return True

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
