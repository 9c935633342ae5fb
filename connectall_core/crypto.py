from __future__ import annotations
from cryptography.hazmat.primitives.asymmetric import ed25519
import hashlib

from .constants import ED25519_PUBLIC_KEY_LEN, ED25519_PRIVATE_KEY_LEN
"""
connectall_core.crypto
----------------------
Ed25519 primitives for ConnectAll identity cards:

- raw (32-byte) key loading with length checks
- the public key fingerprint shared by senders and receivers
"""

# --------- Ed25519 (key loading) ----------
def ed25519_load_private(priv_raw: bytes) -> ed25519.Ed25519PrivateKey:
    if len(priv_raw) != ED25519_PRIVATE_KEY_LEN:
        raise ValueError("invalid Ed25519 private key length")
    return ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)

def ed25519_load_public(pub_raw: bytes) -> ed25519.Ed25519PublicKey:
    if len(pub_raw) != ED25519_PUBLIC_KEY_LEN:
        raise ValueError("invalid Ed25519 public key length")
    return ed25519.Ed25519PublicKey.from_public_bytes(pub_raw)

def compute_pubkey_fingerprint(pubkey_raw: bytes) -> str:
    """
    Compute a stable fingerprint for an Ed25519 public key.

    - Input: raw 32-byte Ed25519 public key
    - Output: full lowercase hex-encoded SHA256 digest

    Both the sending side (card construction) and the receiving side
    (record storage, comparison) must go through this function, otherwise
    fingerprints computed on two devices silently disagree.
    """
    return hashlib.sha256(pubkey_raw).hexdigest()
