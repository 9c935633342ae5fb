"""
connectall_core.ledger
----------------------
Append-only, most-recent-first log of verified encounters.

Single-writer discipline: every mutation happens under one lock, so appends
coming from concurrent peer sessions never interleave or get lost and
``latest()`` is always the last append. Readers get immutable snapshots.
Observers subscribe explicitly; they are notified after the lock is released.
"""

from __future__ import annotations
import threading
from typing import Callable, List, Optional, Tuple

from .logger import get_logger
from .records import ConnectionRecord

log = get_logger("ConnectAll.Ledger")

Listener = Callable[[ConnectionRecord], None]


class ConnectionLedger:
    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[ConnectionRecord] = []
        self._listeners: List[Listener] = []

    def append(self, record: ConnectionRecord) -> None:
        with self._lock:
            self._records.insert(0, record)
            listeners = list(self._listeners)
            size = len(self._records)
        log.info(f"[LEDGER] appended {record.connection_id} peer={record.peer_user_id} size={size}")

        for listener in listeners:
            try:
                listener(record)
            except Exception:
                log.exception(f"[LEDGER] listener failed for {record.connection_id}")

    def all(self) -> Tuple[ConnectionRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def latest(self) -> Optional[ConnectionRecord]:
        with self._lock:
            return self._records[0] if self._records else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for future appends; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
