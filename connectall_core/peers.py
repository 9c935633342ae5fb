# connectall_core/peers.py
from __future__ import annotations
import threading
from typing import List, Tuple

from .events import PeerHandle


class PeerDirectory:
    """Discovered-peer set in discovery order. Mutations are serialized by one lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._peers: List[PeerHandle] = []

    def add(self, peer: PeerHandle) -> bool:
        with self._lock:
            if peer in self._peers:
                return False
            self._peers.append(peer)
            return True

    def remove(self, peer: PeerHandle) -> bool:
        with self._lock:
            if peer not in self._peers:
                return False
            self._peers.remove(peer)
            return True

    def all(self) -> Tuple[PeerHandle, ...]:
        with self._lock:
            return tuple(self._peers)

    def __contains__(self, peer) -> bool:
        with self._lock:
            return peer in self._peers

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)
