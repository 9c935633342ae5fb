"""
connectall_core.codec
---------------------
CardCodec signs outgoing identity cards and verifies incoming ones.

Trust model: the key used to verify an incoming card is the one embedded in
the card itself. A successful decode proves "this payload was produced by the
holder of the private key matching the embedded public key", not that the key
belongs to a previously known peer. Pinning (trust on first use) has to be
layered on top by the caller.

Decode order matters and defines which error a caller sees:

1. payload bytes parse as a JSON object            -> MalformedPayload
2. all five card fields present with the right type -> MissingField
3. embedded key is a well-formed Ed25519 key        -> InvalidPublicKey
4. signature verifies over the exact received bytes -> SignatureInvalid
"""

from __future__ import annotations
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature

from .constants import (
    CARD_DISPLAY_NAME,
    CARD_PUBKEY,
    CARD_PUBKEY_FPR,
    CARD_TS,
    CARD_USER_ID,
    ED25519_SIGNATURE_LEN,
    MAX_PAYLOAD_BYTES,
)
from .crypto import compute_pubkey_fingerprint, ed25519_load_public
from .envelope import CardPayload, Envelope
from .errors import InvalidPublicKey, MalformedPayload, MissingField, SignatureInvalid
from .utils import b64d


def fingerprint(public_key_bytes: bytes) -> str:
    return compute_pubkey_fingerprint(public_key_bytes)


def _require_str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise MissingField(key, "expected string")
    return value


def _require_int(obj: Dict[str, Any], key: str) -> int:
    value = obj.get(key)
    # bool is an int subclass; a card with "ts": true is not a timestamp
    if isinstance(value, bool) or not isinstance(value, int):
        raise MissingField(key, "expected integer")
    return value


class CardCodec:
    def encode(self, card: CardPayload, key) -> Envelope:
        payload = card.to_canonical_bytes()
        return Envelope(payload_bytes=payload, signature_bytes=key.sign(payload))

    def encode_wire(self, card: CardPayload, key) -> bytes:
        return self.encode(card, key).to_wire()

    def decode(self, envelope: Envelope) -> CardPayload:
        payload = envelope.payload_bytes
        if len(payload) > MAX_PAYLOAD_BYTES:
            raise MalformedPayload(f"card payload too large: {len(payload)} bytes")

        try:
            obj = json.loads(payload.decode("utf-8"))
        # deeply nested input exhausts the parser stack
        except (ValueError, RecursionError) as e:
            raise MalformedPayload(f"card payload is not valid JSON: {e}") from e
        if not isinstance(obj, dict):
            raise MalformedPayload("card payload is not a JSON object")

        user_id = _require_str(obj, CARD_USER_ID)
        display_name = _require_str(obj, CARD_DISPLAY_NAME)
        pub_b64 = _require_str(obj, CARD_PUBKEY)
        fpr = _require_str(obj, CARD_PUBKEY_FPR)
        ts = _require_int(obj, CARD_TS)

        try:
            pub_raw = b64d(pub_b64)
            pub = ed25519_load_public(pub_raw)
        except ValueError as e:
            raise InvalidPublicKey(f"embedded public key rejected: {e}") from e

        if len(envelope.signature_bytes) != ED25519_SIGNATURE_LEN:
            raise SignatureInvalid("invalid Ed25519 signature length")

        # verify the bytes as received, never a re-serialization
        try:
            pub.verify(envelope.signature_bytes, payload)
        except InvalidSignature as e:
            raise SignatureInvalid(f"signature does not verify for key {fingerprint(pub_raw)[:16]}") from e

        return CardPayload(
            user_id=user_id,
            display_name=display_name,
            public_key_bytes=pub_raw,
            public_key_fingerprint_hex=fpr,
            unix_timestamp=ts,
        )

    def decode_wire(self, data: bytes) -> CardPayload:
        return self.decode(Envelope.from_wire(data))

    @staticmethod
    def fingerprint(public_key_bytes: bytes) -> str:
        return fingerprint(public_key_bytes)

    @staticmethod
    def fingerprint_matches(card: CardPayload) -> bool:
        """True when the card's claimed fingerprint equals the one derived from its key."""
        return card.public_key_fingerprint_hex.lower() == fingerprint(card.public_key_bytes)
