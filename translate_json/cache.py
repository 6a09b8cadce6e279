import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class ReadWriteLock:
    """
    Many concurrent readers, or one exclusive writer.

    Writers are given priority once waiting, so a steady stream of readers
    cannot starve them.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TranslationCache:
    """
    In-memory translation memory for a single run.

    Maps a decoded source value to its translated value. The lock is only
    held for the map access itself, never while a translation is computed.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = ReadWriteLock()

    def get(self, value: str) -> Optional[str]:
        """Return the cached translation of ``value``, or None."""
        with self._lock.read_locked():
            return self._data.get(value)

    def put(self, value: str, translated: str) -> None:
        """Store a translation, replacing any earlier one for ``value``."""
        with self._lock.write_locked():
            self._data[value] = translated

    def snapshot(self) -> Dict[str, str]:
        with self._lock.read_locked():
            return dict(self._data)

    def __contains__(self, value: object) -> bool:
        with self._lock.read_locked():
            return value in self._data

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._data)
