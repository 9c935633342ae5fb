"""
connectall_core.errors
----------------------
Error taxonomy for the identity exchange.

- KeyStoreError: persisted identity unreadable or corrupt (fatal at startup)
- DecodeError and its variants: an incoming envelope was rejected
- SignatureInvalid: the card did not verify against its embedded key
- TransportError: re-exported from the transport boundary
"""

from __future__ import annotations
from typing import Optional

from connectall_core.transport.transport_base import (
    TransportError,
    TransportTransientError,
    TransportPermanentError,
)


class ConnectAllError(Exception):
    pass


class KeyStoreError(ConnectAllError):
    pass


class DecodeError(ConnectAllError):
    """Base class for every per-encounter rejection of an incoming card."""
    kind: str = "decode_error"


class MalformedPayload(DecodeError):
    kind = "malformed_payload"


class MissingField(DecodeError):
    kind = "missing_field"

    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        msg = f"missing or invalid field '{field}'"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InvalidPublicKey(DecodeError):
    kind = "invalid_public_key"


class SignatureInvalid(DecodeError):
    # Kept distinct from the parse failures: it means corruption or a forged card.
    kind = "signature_invalid"


__all__ = [
    "ConnectAllError",
    "KeyStoreError",
    "DecodeError",
    "MalformedPayload",
    "MissingField",
    "InvalidPublicKey",
    "SignatureInvalid",
    "TransportError",
    "TransportTransientError",
    "TransportPermanentError",
]
