"""
Last-Value Cache
================

Holds the most recent Reading. Just one, no history.

Ingest writes it, /metrics reads it, and both can happen on many threads
at once (FastAPI runs background tasks and sync code in a threadpool).
The lock is only ever held for the in-memory swap, never across file or
network I/O.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Optional

from airgradient_bridge.models import Reading


class ReadWriteLock:
    """
    Many readers OR one writer.

    Once a writer is waiting, new readers queue up behind it so a steady
    stream of scrapes can't starve ingest.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
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


class LastValueCache:
    """
    Guarded cell for the current Reading.

    Readings are frozen pydantic models, so get() can hand out the stored
    object itself: nobody can change it behind our back.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._reading: Optional[Reading] = None

    def get(self) -> Optional[Reading]:
        """Current reading, or None if nothing was ingested since startup."""
        with self._lock.read_locked():
            return self._reading

    def put(self, reading: Reading) -> None:
        """Replace the current reading unconditionally."""
        with self._lock.write_locked():
            self._reading = reading

    def replace(self, build: Callable[[Optional[Reading]], Reading]) -> Reading:
        """
        Atomic read-modify-write.

        build() gets the previous reading (or None) and returns the new one.
        Runs under the write lock, so keep it to plain in-memory work.
        """
        with self._lock.write_locked():
            self._reading = build(self._reading)
            return self._reading
