"""
connectall_core.orchestrator
----------------------------
Drives the card exchange for every peer the transport connects us to.

Per-peer state machine::

    IDLE -> CONNECTED -> CARD_SENT -> CARD_RECEIVED_PENDING -> RECORDED
                                                            -> REJECTED

- PeerConnected: a new handshake starts; our card is encoded and sent at once.
  A failed send leaves the session CONNECTED (a transport reconnect retries).
- DataReceived (CONNECTED or CARD_SENT): the envelope is decoded and verified.
  Any DecodeError ends the handshake as REJECTED; success appends a
  ConnectionRecord to the ledger and ends it as RECORDED.
- RECORDED / REJECTED are terminal for that handshake and kept for
  diagnostics until the peer connects again.

Transport callbacks may arrive on any thread. Each PeerSession owns a FIFO
queue and a lock: events for one peer are processed strictly in delivery
order, sessions for different peers proceed independently, and outcome
callbacks run after the session lock is released.
"""

from __future__ import annotations
import queue
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .codec import CardCodec
from .config import ExchangeConfig
from .envelope import CardPayload
from .errors import DecodeError, TransportError
from .events import (
    CardRecorded,
    CardRejected,
    CardSent,
    DataReceived,
    InvitationReceived,
    OutcomeEvent,
    PeerConnected,
    PeerDisconnected,
    PeerFound,
    PeerHandle,
    PeerLost,
    SendFailed,
    SessionEvent,
    TransportEvent,
)
from .identity import LocalIdentity, SigningKeyPair
from .ledger import ConnectionLedger
from .logger import get_logger
from .peers import PeerDirectory
from .records import ConnectionRecordFactory
from .transport.transport_base import BaseTransport

log = get_logger("ConnectAll.Orchestrator")

AcceptPolicy = Callable[[PeerHandle], bool]
OutcomeHandler = Callable[[OutcomeEvent], None]


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    CARD_SENT = "card_sent"
    CARD_RECEIVED_PENDING = "card_received_pending"
    RECORDED = "recorded"
    REJECTED = "rejected"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.RECORDED, SessionState.REJECTED)


class PeerSession:
    def __init__(self, peer: PeerHandle):
        self.peer = peer
        self.state = SessionState.IDLE
        self.last_error: Optional[Exception] = None
        self.events: "queue.Queue[SessionEvent]" = queue.Queue()
        self.lock = threading.Lock()

    def __repr__(self):
        return f"PeerSession(peer={self.peer!r}, state={self.state.value})"


class ExchangeOrchestrator:
    def __init__(
        self,
        identity: LocalIdentity,
        keys: SigningKeyPair,
        transport: BaseTransport,
        ledger: ConnectionLedger,
        config: Optional[ExchangeConfig] = None,
        directory: Optional[PeerDirectory] = None,
        codec: Optional[CardCodec] = None,
        factory: Optional[ConnectionRecordFactory] = None,
        accept_policy: Optional[AcceptPolicy] = None,
        on_outcome: Optional[OutcomeHandler] = None,
    ):
        self.identity = identity
        self.keys = keys
        self.transport = transport
        self.ledger = ledger
        self.config = config or ExchangeConfig()
        self.directory = directory or PeerDirectory()
        self.codec = codec or CardCodec()
        self.factory = factory or ConnectionRecordFactory()
        self.accept_policy = accept_policy
        self.on_outcome = on_outcome
        self.display_name = self.config.display_name

        self._sessions: Dict[PeerHandle, PeerSession] = {}
        self._sessions_lock = threading.Lock()

        self.transport.set_handler(self.handle_event)

    # ------------------------------------------------------------------
    # Discovery / lifecycle (delegated to the transport)
    # ------------------------------------------------------------------
    def start(self) -> None:
        self.transport.start()

    def stop(self) -> None:
        # in-flight sessions are left to finish their handshake
        self.transport.stop()

    def invite(self, peer: PeerHandle):
        return self.transport.invite(peer)

    def set_display_name(self, name: str) -> None:
        """Name used on every card sent from now on. Must be encodable as UTF-8."""
        try:
            name.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(f"display name is not valid UTF-8 text: {e}") from e
        self.display_name = name

    def accept_invitation(self, peer: PeerHandle) -> bool:
        if self.accept_policy is not None:
            accepted = bool(self.accept_policy(peer))
        else:
            accepted = self.config.auto_accept
        log.info(f"[INVITE] from={peer} accepted={accepted}")
        return accepted

    # ------------------------------------------------------------------
    # Transport entry point
    # ------------------------------------------------------------------
    def handle_event(self, event: TransportEvent):
        if isinstance(event, PeerFound):
            if self.directory.add(event.peer):
                log.info(f"[DISCOVERY] found {event.peer}")
            return None
        if isinstance(event, PeerLost):
            if self.directory.remove(event.peer):
                log.info(f"[DISCOVERY] lost {event.peer}")
            return None
        if isinstance(event, InvitationReceived):
            return self.accept_invitation(event.peer)
        if isinstance(event, (PeerConnected, PeerDisconnected, DataReceived)):
            session = self._session(event.peer)
            session.events.put(event)
            self._drain(session)
            return None
        raise TypeError(f"unsupported transport event: {event!r}")

    def _session(self, peer: PeerHandle) -> PeerSession:
        with self._sessions_lock:
            session = self._sessions.get(peer)
            if session is None:
                session = self._sessions[peer] = PeerSession(peer)
            return session

    def _drain(self, session: PeerSession) -> None:
        outcomes: List[OutcomeEvent] = []
        with session.lock:
            while True:
                try:
                    event = session.events.get_nowait()
                except queue.Empty:
                    break
                outcome = self._process(session, event)
                if outcome is not None:
                    outcomes.append(outcome)

        for outcome in outcomes:
            self._notify(outcome)

    def _notify(self, outcome: OutcomeEvent) -> None:
        if self.on_outcome is None:
            return
        try:
            self.on_outcome(outcome)
        except Exception:
            log.exception(f"[OUTCOME] handler failed for {type(outcome).__name__} peer={outcome.peer}")

    # ------------------------------------------------------------------
    # State machine (runs under the session lock)
    # ------------------------------------------------------------------
    def _process(self, session: PeerSession, event: SessionEvent) -> Optional[OutcomeEvent]:
        if isinstance(event, PeerConnected):
            return self._on_connected(session)
        if isinstance(event, DataReceived):
            return self._on_data(session, event.data)
        if isinstance(event, PeerDisconnected):
            self._on_disconnected(session)
        return None

    def _on_connected(self, session: PeerSession) -> OutcomeEvent:
        # every connect is a fresh handshake, even after RECORDED/REJECTED
        session.state = SessionState.CONNECTED
        session.last_error = None
        log.info(f"[SESSION] {session.peer} connected")

        card = CardPayload.for_key(self.identity.id, self.display_name, self.keys)
        try:
            data = self.codec.encode_wire(card, self.keys)
        except UnicodeEncodeError as e:
            # display name from config/env can carry lone surrogates
            session.last_error = e
            log.error(f"[CARD SEND] to={session.peer} card not encodable: {e.reason}")
            return SendFailed(session.peer, e)

        try:
            self.transport.send(data, [session.peer], timeout=self.config.send_timeout)
        except TransportError as e:
            session.last_error = e
            log.error(f"[CARD SEND] to={session.peer} failed: {e}")
            return SendFailed(session.peer, e)

        session.state = SessionState.CARD_SENT
        log.info(f"[CARD SEND] to={session.peer} ts={card.unix_timestamp} bytes={len(data)}")
        return CardSent(session.peer)

    def _on_data(self, session: PeerSession, data: bytes) -> Optional[OutcomeEvent]:
        if session.state not in (SessionState.CONNECTED, SessionState.CARD_SENT):
            log.warning(f"[CARD DROP] from={session.peer} state={session.state.value} bytes={len(data)}")
            return None

        session.state = SessionState.CARD_RECEIVED_PENDING
        try:
            card = self.codec.decode_wire(data)
        except DecodeError as e:
            session.state = SessionState.REJECTED
            session.last_error = e
            log.warning(f"[CARD REJECT] from={session.peer} reason={e.kind} detail={e}")
            return CardRejected(session.peer, e)

        derived_fpr = self.codec.fingerprint(card.public_key_bytes)
        if not self.codec.fingerprint_matches(card):
            log.warning(
                f"[CARD FPR] from={session.peer} claimed={card.public_key_fingerprint_hex} derived={derived_fpr}"
            )

        record = self.factory.create(
            self.config.method,
            self.identity.id,
            card.user_id,
            card.display_name,
            derived_fpr,
        )
        self.ledger.append(record)
        session.state = SessionState.RECORDED
        log.info(f"[CARD RECORDED] {record.to_json()}")
        return CardRecorded(session.peer, record)

    def _on_disconnected(self, session: PeerSession) -> None:
        log.info(f"[SESSION] {session.peer} disconnected state={session.state.value}")
        if not session.state.terminal:
            session.state = SessionState.IDLE

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def session_state(self, peer: PeerHandle) -> SessionState:
        with self._sessions_lock:
            session = self._sessions.get(peer)
        return session.state if session else SessionState.IDLE

    def last_error(self, peer: PeerHandle) -> Optional[Exception]:
        with self._sessions_lock:
            session = self._sessions.get(peer)
        return session.last_error if session else None

    def sessions(self) -> Dict[PeerHandle, SessionState]:
        with self._sessions_lock:
            return {peer: s.state for peer, s in self._sessions.items()}

    def pending_peers(self) -> Tuple[PeerHandle, ...]:
        """Connected peers whose card has not arrived yet."""
        waiting = (SessionState.CONNECTED, SessionState.CARD_SENT, SessionState.CARD_RECEIVED_PENDING)
        return tuple(p for p, state in self.sessions().items() if state in waiting)

    def rejected_peers(self) -> Tuple[PeerHandle, ...]:
        return tuple(p for p, state in self.sessions().items() if state is SessionState.REJECTED)
