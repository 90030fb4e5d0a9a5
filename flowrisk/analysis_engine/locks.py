"""
Single-writer / multi-reader lock used by every analysis store.

Readers share the lock; a writer holds it exclusively. Once a writer is
waiting, new readers queue behind it, so a steady stream of overlapping
readers cannot starve writes. A thread that already holds a read lock may
take it again without waiting, even with a writer queued.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Writer-preferring readers-writer lock built on threading.Condition."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._waiting_writers = 0
        self._writer: int | None = None
        self._local = threading.local()

    def _read_depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @property
    def waiting_writers(self) -> int:
        with self._cond:
            return self._waiting_writers

    def acquire_read(self) -> None:
        depth = self._read_depth()
        with self._cond:
            if depth == 0:
                while self._writer is not None or self._waiting_writers > 0:
                    self._cond.wait()
            self._readers += 1
        self._local.depth = depth + 1

    def release_read(self) -> None:
        depth = self._read_depth()
        if depth <= 0:
            raise RuntimeError("release_read without matching acquire_read")
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()
        self._local.depth = depth - 1

    def acquire_write(self) -> None:
        me = threading.get_ident()
        if self._read_depth() > 0:
            raise RuntimeError("cannot upgrade a read lock to a write lock")
        with self._cond:
            if self._writer == me:
                raise RuntimeError("write lock is not reentrant")
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers > 0:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
                if self._waiting_writers == 0:
                    # Readers parked behind this writer may proceed once it is done.
                    self._cond.notify_all()
            self._writer = me

    def release_write(self) -> None:
        with self._cond:
            if self._writer != threading.get_ident():
                raise RuntimeError("release_write by a thread that does not hold the lock")
            self._writer = None
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
