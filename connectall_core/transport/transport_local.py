# connectall_core/transport/transport_local.py
from __future__ import annotations
import threading
from collections import deque
from typing import Deque, Dict, Iterable, Optional, Set, Tuple

from connectall_core.events import (
    DataReceived,
    InvitationReceived,
    PeerConnected,
    PeerDisconnected,
    PeerFound,
    PeerHandle,
    PeerLost,
    TransportEvent,
)
from connectall_core.logger import get_logger
from connectall_core.transport.transport_base import BaseTransport, TransportPermanentError

log = get_logger("ConnectAll.Transport.Local")


class LocalMesh:
    """
    In-process stand-in for a local-network discovery medium.

    Adapters join the mesh to advertise/browse, invite each other, and exchange
    bytes over established links. Events are queued and delivered in FIFO
    order by a single draining thread at a time, so an event raised while a
    handler is running (e.g. sending a card from inside a connect handler) is
    delivered after the current one, never re-entrantly. This mirrors a real
    transport: both ends see PeerConnected before any data on that link.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._members: Dict[PeerHandle, "LocalAdapter"] = {}
        self._advertising: Set[PeerHandle] = set()
        self._links: Set[frozenset] = set()
        self._queue: Deque[Tuple["LocalAdapter", TransportEvent]] = deque()
        self._draining = False

    # ------------------------------------------------------------------
    # membership / discovery
    # ------------------------------------------------------------------
    def register(self, adapter: "LocalAdapter") -> None:
        with self._lock:
            existing = self._members.get(adapter.peer)
            if existing is not None and existing is not adapter:
                log.warning(f"[LOCAL] peer handle {adapter.peer} re-registered, replacing previous adapter")
            self._members[adapter.peer] = adapter

    def advertise(self, adapter: "LocalAdapter") -> None:
        with self._lock:
            if adapter.peer in self._advertising:
                return
            others = [self._members[p] for p in self._advertising]
            self._advertising.add(adapter.peer)
            for other in others:
                self._queue.append((adapter, PeerFound(other.peer)))
                self._queue.append((other, PeerFound(adapter.peer)))
        self._drain()

    def withdraw(self, adapter: "LocalAdapter") -> None:
        with self._lock:
            if adapter.peer not in self._advertising:
                return
            self._advertising.discard(adapter.peer)
            for p in self._advertising:
                self._queue.append((self._members[p], PeerLost(adapter.peer)))
                self._queue.append((adapter, PeerLost(p)))
        self._drain()

    # ------------------------------------------------------------------
    # links
    # ------------------------------------------------------------------
    def invite(self, inviter: "LocalAdapter", peer: PeerHandle) -> bool:
        with self._lock:
            target = self._members.get(peer)
            if target is None or peer not in self._advertising:
                raise TransportPermanentError(f"peer not discoverable: {peer}")

        # invitation decision is synchronous: the handler's return value
        accepted = bool(target._emit(InvitationReceived(inviter.peer)))
        if not accepted:
            log.info(f"[LOCAL INVITE] {inviter.peer} -> {peer} declined")
            return False

        with self._lock:
            self._links.add(frozenset((inviter.peer, peer)))
            self._queue.append((target, PeerConnected(inviter.peer)))
            self._queue.append((inviter, PeerConnected(peer)))
        log.info(f"[LOCAL INVITE] {inviter.peer} <-> {peer} connected")
        self._drain()
        return True

    def disconnect(self, a: PeerHandle, b: PeerHandle) -> None:
        with self._lock:
            link = frozenset((a, b))
            if link not in self._links:
                return
            self._links.discard(link)
            self._queue.append((self._members[a], PeerDisconnected(b)))
            self._queue.append((self._members[b], PeerDisconnected(a)))
        self._drain()

    def deliver(self, sender: "LocalAdapter", data: bytes, peers: Iterable[PeerHandle]) -> None:
        with self._lock:
            targets = []
            for p in peers:
                if frozenset((sender.peer, p)) not in self._links:
                    raise TransportPermanentError(f"no link between {sender.peer} and {p}")
                targets.append(self._members[p])
            for target in targets:
                self._queue.append((target, DataReceived(sender.peer, bytes(data))))
        self._drain()

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------
    def _drain(self) -> None:
        with self._lock:
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        self._draining = False
                        return
                    adapter, event = self._queue.popleft()
                try:
                    adapter._emit(event)
                except Exception:
                    log.exception(f"[LOCAL DISPATCH] handler failed for {adapter.peer}: {type(event).__name__}")
        except BaseException:
            with self._lock:
                self._draining = False
            raise


_DEFAULT_MESH = LocalMesh()


class LocalAdapter(BaseTransport):
    """
    Loopback transport over a LocalMesh. Used for tests, demos and
    single-process setups; a radio-backed transport implements the same
    BaseTransport contract.
    """

    name = "local"

    def __init__(self, peer: PeerHandle, mesh: Optional[LocalMesh] = None):
        super().__init__()
        self.peer = peer
        self.mesh = mesh or _DEFAULT_MESH
        self.mesh.register(self)

    def start(self) -> None:
        log.info(f"[LOCAL] {self.peer} advertising + browsing")
        self.mesh.advertise(self)

    def stop(self) -> None:
        log.info(f"[LOCAL] {self.peer} stopped discovery")
        self.mesh.withdraw(self)

    def invite(self, peer: PeerHandle) -> bool:
        return self.mesh.invite(self, peer)

    def disconnect(self, peer: PeerHandle) -> None:
        self.mesh.disconnect(self.peer, peer)

    def send(self, data: bytes, peers: Iterable[PeerHandle], timeout: Optional[float] = None) -> None:
        # in-process delivery never blocks, so the timeout has nothing to bound
        peers = list(peers)
        log.debug(f"[LOCAL SEND] {self.peer} -> {peers} bytes={len(data)}")
        self.mesh.deliver(self, data, peers)
