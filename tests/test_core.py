import hashlib
import json

import pytest

from connectall_core.codec import CardCodec, fingerprint
from connectall_core.constants import MAX_ENVELOPE_BYTES, MAX_PAYLOAD_BYTES
from connectall_core.crypto import compute_pubkey_fingerprint
from connectall_core.envelope import CardPayload, Envelope
from connectall_core.errors import (
    DecodeError,
    InvalidPublicKey,
    MalformedPayload,
    MissingField,
    SignatureInvalid,
)
from connectall_core.identity import SigningKeyPair
from connectall_core.utils import b64d, b64e, canonical_json


def _signed(obj, keys):
    payload = canonical_json(obj)
    return Envelope(payload_bytes=payload, signature_bytes=keys.sign(payload))


def _card_dict(keys, **overrides):
    d = {
        "userId": "b2",
        "displayName": "Bob",
        "pubKey": b64e(keys.public_bytes),
        "pubKeyFingerprint": keys.fingerprint,
        "ts": 1700000000,
    }
    d.update(overrides)
    return d


def test_roundtrip():
    keys = SigningKeyPair.generate()
    codec = CardCodec()
    card = CardPayload.for_key("a1", "Alice Ü", keys, ts=1700000000)

    env = codec.encode(card, keys)
    assert codec.decode(env) == card
    assert codec.decode_wire(env.to_wire()) == card


def test_canonical_payload_layout():
    keys = SigningKeyPair.generate()
    card = CardPayload.for_key("a1", "Alice", keys, ts=1700000000)
    env = CardCodec().encode(card, keys)

    obj = json.loads(env.payload_bytes)
    assert list(obj) == sorted(obj)
    assert set(obj) == {"userId", "displayName", "pubKey", "pubKeyFingerprint", "ts"}
    assert obj["pubKeyFingerprint"] == hashlib.sha256(keys.public_bytes).hexdigest()
    assert b" " not in env.payload_bytes

    wire = json.loads(env.to_wire())
    assert set(wire) == {"payloadB64", "signatureB64"}
    assert b64d(wire["payloadB64"]) == env.payload_bytes


def test_encode_is_deterministic():
    keys = SigningKeyPair.generate()
    card = CardPayload.for_key("a1", "Alice", keys, ts=1700000000)
    codec = CardCodec()
    assert codec.encode(card, keys) == codec.encode(card, keys)


def test_fingerprint_stable():
    keys = SigningKeyPair.generate()
    fpr = fingerprint(keys.public_bytes)
    assert fpr == fingerprint(keys.public_bytes)
    assert fpr == compute_pubkey_fingerprint(keys.public_bytes)
    assert fpr == CardCodec.fingerprint(keys.public_bytes)
    assert len(fpr) == 64 and fpr == fpr.lower()


def test_signature_bit_flip_rejected():
    keys = SigningKeyPair.generate()
    codec = CardCodec()
    env = codec.encode(CardPayload.for_key("a1", "Alice", keys, ts=1700000000), keys)

    for i in range(len(env.signature_bytes)):
        for bit in range(8):
            sig = bytearray(env.signature_bytes)
            sig[i] ^= 1 << bit
            with pytest.raises(SignatureInvalid):
                codec.decode(Envelope(env.payload_bytes, bytes(sig)))


def test_payload_bit_flip_inside_value_rejected():
    keys = SigningKeyPair.generate()
    codec = CardCodec()
    env = codec.encode(CardPayload.for_key("a1", "Alice", keys, ts=1700000000), keys)

    # "Alice" -> "@lice": still valid JSON, different bytes
    idx = env.payload_bytes.index(b"Alice")
    payload = bytearray(env.payload_bytes)
    payload[idx] ^= 0x01
    with pytest.raises(SignatureInvalid):
        codec.decode(Envelope(bytes(payload), env.signature_bytes))


@pytest.mark.parametrize("field,expected", [
    # payload damage may surface as a parse or field error before verification
    ("payloadB64", DecodeError),
    ("signatureB64", (MalformedPayload, SignatureInvalid)),
])
def test_wire_bit_flip_never_accepted(field, expected):
    keys = SigningKeyPair.generate()
    codec = CardCodec()
    wire = codec.encode(CardPayload.for_key("a1", "Alice", keys, ts=1700000000), keys).to_dict()

    for i in range(len(wire[field])):
        mutated = dict(wire)
        chars = list(mutated[field])
        chars[i] = chr(ord(chars[i]) ^ 0x01)
        mutated[field] = "".join(chars)
        with pytest.raises(expected):
            codec.decode(Envelope.from_dict(mutated))


def test_malformed_base64_payload():
    keys = SigningKeyPair.generate()
    env = CardCodec().encode(CardPayload.for_key("a1", "Alice", keys, ts=1700000000), keys)
    wire = json.dumps({"payloadB64": "%%% not base64 %%%", "signatureB64": b64e(env.signature_bytes)})

    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(wire.encode("utf-8"))


def test_envelope_not_json():
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(b"\xff\xfe not json")
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(b'["payloadB64"]')
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(b'{"payloadB64": "e30="}')


def test_payload_not_object():
    keys = SigningKeyPair.generate()
    payload = b"[1, 2, 3]"
    with pytest.raises(MalformedPayload):
        CardCodec().decode(Envelope(payload, keys.sign(payload)))


def test_signed_with_different_key():
    embedded = SigningKeyPair.generate()
    other = SigningKeyPair.generate()
    payload = canonical_json(_card_dict(embedded))

    with pytest.raises(SignatureInvalid):
        CardCodec().decode(Envelope(payload, other.sign(payload)))


@pytest.mark.parametrize("field", ["userId", "displayName", "pubKey", "pubKeyFingerprint", "ts"])
def test_missing_field(field):
    keys = SigningKeyPair.generate()
    card = _card_dict(keys)
    del card[field]

    with pytest.raises(MissingField) as exc:
        CardCodec().decode(_signed(card, keys))
    assert exc.value.field == field
    assert exc.value.kind == "missing_field"


@pytest.mark.parametrize("field,value", [("userId", 42), ("displayName", None), ("ts", "1700000000"), ("ts", True)])
def test_wrong_field_type(field, value):
    keys = SigningKeyPair.generate()
    with pytest.raises(MissingField):
        CardCodec().decode(_signed(_card_dict(keys, **{field: value}), keys))


@pytest.mark.parametrize("pub", ["not-base64!", b64e(b"\x01" * 31), b64e(b"\x01" * 33)])
def test_invalid_public_key(pub):
    keys = SigningKeyPair.generate()
    with pytest.raises(InvalidPublicKey):
        CardCodec().decode(_signed(_card_dict(keys, pubKey=pub), keys))


def test_error_kinds_are_distinguishable():
    kinds = {cls.kind for cls in (MalformedPayload, MissingField, InvalidPublicKey, SignatureInvalid)}
    assert len(kinds) == 4
    assert issubclass(SignatureInvalid, DecodeError)


def test_fingerprint_matches():
    keys = SigningKeyPair.generate()
    card = CardPayload.for_key("a1", "Alice", keys, ts=1)
    assert CardCodec.fingerprint_matches(card)

    forged = CardPayload("a1", "Alice", keys.public_bytes, "00" * 32, 1)
    assert not CardCodec.fingerprint_matches(forged)


def test_b64d_strict():
    assert b64d(b64e(b"\x00\x01")) == b"\x00\x01"
    with pytest.raises(ValueError):
        b64d("AAE")          # missing padding
    with pytest.raises(ValueError):
        b64d("AAF=")         # non-zero padding bits
    with pytest.raises(ValueError):
        b64d("A A=")


def test_deeply_nested_payload_is_malformed():
    keys = SigningKeyPair.generate()
    payload = b"[" * 8000
    env = Envelope(payload, keys.sign(payload))

    with pytest.raises(MalformedPayload):
        CardCodec().decode(env)
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(env.to_wire())


def test_deeply_nested_envelope_is_malformed():
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(b"[" * (MAX_ENVELOPE_BYTES - 1))
    with pytest.raises(MalformedPayload):
        CardCodec().decode_wire(b'{"payloadB64":' + b"[" * 10000)


def test_oversized_input_rejected_before_parsing():
    keys = SigningKeyPair.generate()
    payload = canonical_json(_card_dict(keys, displayName="x" * MAX_PAYLOAD_BYTES))
    with pytest.raises(MalformedPayload, match="too large"):
        CardCodec().decode(Envelope(payload, keys.sign(payload)))

    with pytest.raises(MalformedPayload, match="too large"):
        CardCodec().decode_wire(b"[" * 200000)
