"""
connectall_core.envelope
------------------------
Defines the identity card and its signed wire wrapper.

- CardPayload: the claim a peer makes about itself at send time
- Envelope: payload bytes + Ed25519 signature over exactly those bytes

Wire form of an envelope (opaque bytes to the transport)::

    {"payloadB64": base64(canonical payload), "signatureB64": base64(signature)}
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import json

from .constants import (
    CARD_DISPLAY_NAME,
    CARD_PUBKEY,
    CARD_PUBKEY_FPR,
    CARD_TS,
    CARD_USER_ID,
    ENVELOPE_PAYLOAD,
    ENVELOPE_SIGNATURE,
    MAX_ENVELOPE_BYTES,
)
from .crypto import compute_pubkey_fingerprint
from .errors import MalformedPayload
from .utils import b64d, b64e, canonical_json, now_unix


@dataclass(frozen=True)
class CardPayload:
    user_id: str
    display_name: str
    public_key_bytes: bytes
    public_key_fingerprint_hex: str
    unix_timestamp: int

    @classmethod
    def for_key(cls, user_id: str, display_name: str, key, ts: Optional[int] = None) -> "CardPayload":
        """Build a fresh card for ``key`` (a SigningKeyPair) stamped with ``ts`` or now."""
        pub = key.public_bytes
        return cls(
            user_id=user_id,
            display_name=display_name,
            public_key_bytes=pub,
            public_key_fingerprint_hex=compute_pubkey_fingerprint(pub),
            unix_timestamp=int(now_unix() if ts is None else ts),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            CARD_USER_ID: self.user_id,
            CARD_DISPLAY_NAME: self.display_name,
            CARD_PUBKEY: b64e(self.public_key_bytes),
            CARD_PUBKEY_FPR: self.public_key_fingerprint_hex,
            CARD_TS: int(self.unix_timestamp),
        }

    def to_canonical_bytes(self) -> bytes:
        return canonical_json(self.to_dict())


@dataclass(frozen=True)
class Envelope:
    payload_bytes: bytes
    signature_bytes: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            ENVELOPE_PAYLOAD: b64e(self.payload_bytes),
            ENVELOPE_SIGNATURE: b64e(self.signature_bytes),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def to_wire(self) -> bytes:
        return self.to_json().encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Envelope":
        """Rebuild an envelope from its wire dict, keeping the payload bytes exactly as sent."""
        if not isinstance(data, dict):
            raise MalformedPayload("envelope is not a JSON object")
        decoded = {}
        for key in (ENVELOPE_PAYLOAD, ENVELOPE_SIGNATURE):
            value = data.get(key)
            if not isinstance(value, str):
                raise MalformedPayload(f"envelope field '{key}' missing or not a string")
            try:
                decoded[key] = b64d(value)
            except ValueError as e:
                raise MalformedPayload(f"envelope field '{key}': {e}") from e
        return cls(payload_bytes=decoded[ENVELOPE_PAYLOAD], signature_bytes=decoded[ENVELOPE_SIGNATURE])

    @classmethod
    def from_wire(cls, data: bytes) -> "Envelope":
        if len(data) > MAX_ENVELOPE_BYTES:
            raise MalformedPayload(f"envelope too large: {len(data)} bytes")
        try:
            obj = json.loads(bytes(data).decode("utf-8"))
        except (ValueError, RecursionError) as e:
            raise MalformedPayload(f"envelope is not valid JSON: {e}") from e
        return cls.from_dict(obj)
