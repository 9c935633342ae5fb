"""
connectall_core.events
----------------------
Explicit event variants exchanged between the transport and the orchestrator.

Transport events flow *into* the orchestrator (one ordered stream per peer);
outcome events flow *out* of it to whoever drives the process (UI, tests,
diagnostics). Peer handles are opaque strings owned by the transport.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from connectall_core.records import ConnectionRecord

PeerHandle = str


# --------- transport -> orchestrator ----------
@dataclass(frozen=True)
class PeerFound:
    peer: PeerHandle


@dataclass(frozen=True)
class PeerLost:
    peer: PeerHandle


@dataclass(frozen=True)
class InvitationReceived:
    peer: PeerHandle


@dataclass(frozen=True)
class PeerConnected:
    peer: PeerHandle


@dataclass(frozen=True)
class PeerDisconnected:
    peer: PeerHandle


@dataclass(frozen=True)
class DataReceived:
    peer: PeerHandle
    data: bytes


TransportEvent = Union[PeerFound, PeerLost, InvitationReceived, PeerConnected, PeerDisconnected, DataReceived]
SessionEvent = Union[PeerConnected, PeerDisconnected, DataReceived]


# --------- orchestrator -> caller ----------
@dataclass(frozen=True)
class CardSent:
    peer: PeerHandle


@dataclass(frozen=True)
class SendFailed:
    peer: PeerHandle
    error: Exception


@dataclass(frozen=True)
class CardRecorded:
    peer: PeerHandle
    record: "ConnectionRecord"


@dataclass(frozen=True)
class CardRejected:
    peer: PeerHandle
    error: Exception

    @property
    def reason(self) -> str:
        return getattr(self.error, "kind", type(self.error).__name__)


OutcomeEvent = Union[CardSent, SendFailed, CardRecorded, CardRejected]
