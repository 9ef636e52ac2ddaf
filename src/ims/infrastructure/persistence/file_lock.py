"""Locks shared by every process working on the same data directory.

``ProcessLock`` pairs a ``threading.RLock`` with a ``filelock.FileLock``:
the first keeps threads of this process out, the second keeps other
processes out. Both are re-entrant, so a thread that already holds the
lock may take it again (the ledger nests key locks, and repositories nest
``load`` inside a read-modify-write).
"""

from __future__ import annotations

import threading
from pathlib import Path
from urllib.parse import quote

from filelock import FileLock, Timeout

from ims.domain.exceptions import ConcurrentModificationError
from ims.domain.model.stock import StockKey

# short polls keep hand-offs between processes quick under contention
_POLL_INTERVAL = 0.005


class ProcessLock:

    def __init__(self, lock_path: Path, timeout: float = 30.0) -> None:
        self._thread_lock = threading.RLock()
        # thread_local=False: the RLock already decides which thread may hold it
        self._file_lock = FileLock(str(lock_path), timeout=timeout, thread_local=False)

    @property
    def lock_file(self) -> str:
        return self._file_lock.lock_file

    def __enter__(self) -> ProcessLock:
        self._thread_lock.acquire()
        try:
            self._file_lock.acquire(poll_interval=_POLL_INTERVAL)
        except Timeout as exc:
            self._thread_lock.release()
            raise ConcurrentModificationError(
                f"Timed out waiting for {self.lock_file}; another process is holding it"
            ) from exc
        except BaseException:
            self._thread_lock.release()
            raise
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._file_lock.release()
        self._thread_lock.release()


class StockKeyLocks:
    """Lock factory for ``InventoryLedger``: one lock file per stock key."""

    def __init__(self, directory: Path, timeout: float = 30.0) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self._directory = directory
        self._timeout = timeout

    def __call__(self, key: StockKey) -> ProcessLock:
        name = quote(str(key), safe="@") + ".lock"
        return ProcessLock(self._directory / name, self._timeout)
