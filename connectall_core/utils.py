"""
connectall_core.utils
---------------------
Lightweight helpers for identifier generation, timestamping, base64 utilities, and canonical JSON serialization.
These functions keep card signing deterministic and connection ids reproducible on both peers.
"""

from __future__ import annotations
import base64, binascii, json, time, uuid, hashlib
from datetime import datetime, timezone
from typing import Any, Dict


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    # strict: reject characters outside the alphabet and non-zero padding bits,
    # so every distinct string maps to distinct bytes
    try:
        raw = base64.b64decode(s.encode("ascii"), validate=True)
    except (UnicodeEncodeError, binascii.Error) as e:
        raise ValueError(f"invalid base64: {e}") from e
    if b64e(raw) != s:
        raise ValueError("non-canonical base64")
    return raw

def now_unix() -> int:
    return int(time.time())

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def new_user_id() -> str:
    # RFC 4122 textual form, lowercase
    return str(uuid.uuid4()).lower()

def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for signing
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
