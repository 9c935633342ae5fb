# connectall_core/transport/__init__.py
import os
import socket
from connectall_core.transport.transport_base import (
    BaseTransport,
    TransportError,
    TransportTransientError,
    TransportPermanentError,
)
from connectall_core.transport.transport_local import LocalAdapter, LocalMesh


def transport_factory(config: dict | None = None) -> BaseTransport:
    """
    Resolve the runtime transport.

    For now:
        - local (in-process LocalMesh loopback)
    Radio-backed transports plug in by implementing BaseTransport.
    """
    config = config or {}
    mode = (config.get("transport") or os.getenv("CONNECTALL_TRANSPORT", "local")).lower()

    if mode == "local":
        peer = config.get("peer") or os.getenv("CONNECTALL_DISPLAY_NAME") or socket.gethostname()
        return LocalAdapter(peer, mesh=config.get("mesh"))

    raise ValueError(f"Unknown transport: {mode}")


__all__ = [
    "BaseTransport",
    "TransportError",
    "TransportTransientError",
    "TransportPermanentError",
    "LocalAdapter",
    "LocalMesh",
    "transport_factory",
]
