from __future__ import annotations
from typing import Callable, Iterable, Optional, Any

from connectall_core.events import PeerHandle, TransportEvent


class TransportError(Exception):
    pass


class TransportTransientError(TransportError):
    pass


class TransportPermanentError(TransportError):
    pass


EventHandler = Callable[[TransportEvent], Any]


class BaseTransport:
    """
    Local-network transport contract.

    Discovery, invitations and byte delivery belong to the transport.
    Everything it observes is reported as a TransportEvent through the single
    registered handler, possibly from several threads at once (one per link).
    For InvitationReceived the handler's return value is the accept decision.

    Canonical payload at the transport boundary is bytes.
    """
    name: str = "base"

    def __init__(self):
        self._handler: Optional[EventHandler] = None

    def set_handler(self, handler: Optional[EventHandler]) -> None:
        self._handler = handler

    def start(self) -> None:
        """Begin advertising and browsing for peers."""
        raise NotImplementedError

    def stop(self) -> None:
        """Stop advertising and browsing. Established links are not torn down."""
        raise NotImplementedError

    def invite(self, peer: PeerHandle) -> None:
        raise NotImplementedError

    def send(self, data: bytes, peers: Iterable[PeerHandle], timeout: Optional[float] = None) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return

    def _emit(self, event: TransportEvent) -> Any:
        if self._handler is None:
            return None
        return self._handler(event)
