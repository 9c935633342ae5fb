"""
connectall_core.identity
------------------------
Long-lived local identity for this installation.

IdentityKeyStore loads (or on first run creates) two secure-store items:

- ``userId``: a random lowercase UUID naming this installation
- ``sk.signing``: the raw 32-byte Ed25519 private key that signs our cards

Both are stable for the lifetime of the store. A corrupt or unreadable item is
a KeyStoreError, never a silent fallback to a fresh throwaway identity, since
connection ids computed by peers in earlier sessions depend on the persisted id.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric import ed25519

from .constants import ACCOUNT_SIGNING_KEY, ACCOUNT_USER_ID, KEYSTORE_SERVICE
from .crypto import compute_pubkey_fingerprint, ed25519_load_private
from .errors import KeyStoreError
from .logger import get_logger
from .storage.provider import SecureStore
from .utils import new_user_id

log = get_logger("ConnectAll.Identity")


@dataclass(frozen=True)
class LocalIdentity:
    id: str


class SigningKeyPair:
    """Ed25519 keypair. Read-only after load; safe to share across threads."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey):
        self._private_key = private_key
        self._public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "SigningKeyPair":
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, priv_raw: bytes) -> "SigningKeyPair":
        return cls(ed25519_load_private(priv_raw))

    @property
    def private_key(self) -> ed25519.Ed25519PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> ed25519.Ed25519PublicKey:
        return self._public_key

    @property
    def private_bytes(self) -> bytes:
        return self._private_key.private_bytes_raw()

    @property
    def public_bytes(self) -> bytes:
        return self._public_key.public_bytes_raw()

    @property
    def fingerprint(self) -> str:
        return compute_pubkey_fingerprint(self.public_bytes)

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)

    def __eq__(self, other):
        if not isinstance(other, SigningKeyPair):
            return NotImplemented
        return self.private_bytes == other.private_bytes

    def __hash__(self):
        return hash(self.public_bytes)

    def __repr__(self):
        # never print private material
        return f"SigningKeyPair(fingerprint={self.fingerprint[:16]}...)"


class IdentityKeyStore:
    def __init__(self, store: SecureStore, service: str = KEYSTORE_SERVICE):
        self.store = store
        self.service = service

    def load_or_create(self) -> Tuple[LocalIdentity, SigningKeyPair]:
        identity = self._load_or_create_identity()
        keys = self._load_or_create_keys()
        log.info(f"[KEYSTORE] identity ready user_id={identity.id} fpr={keys.fingerprint}")
        return identity, keys

    def _load(self, account: str):
        try:
            return self.store.load(account, self.service)
        except Exception as e:
            raise KeyStoreError(f"secure store unreadable ({self.service}/{account}): {e}") from e

    def _save(self, data: bytes, account: str) -> None:
        try:
            self.store.save(data, account, self.service)
        except Exception as e:
            raise KeyStoreError(f"secure store write failed ({self.service}/{account}): {e}") from e

    def _load_or_create_identity(self) -> LocalIdentity:
        data = self._load(ACCOUNT_USER_ID)
        if data is None:
            user_id = new_user_id()
            self._save(user_id.encode("utf-8"), ACCOUNT_USER_ID)
            log.info(f"[KEYSTORE] created local identity {user_id}")
            return LocalIdentity(user_id)

        try:
            user_id = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise KeyStoreError(f"persisted {ACCOUNT_USER_ID} is not valid UTF-8") from e
        if not user_id.strip():
            raise KeyStoreError(f"persisted {ACCOUNT_USER_ID} is empty")
        return LocalIdentity(user_id)

    def _load_or_create_keys(self) -> SigningKeyPair:
        data = self._load(ACCOUNT_SIGNING_KEY)
        if data is None:
            keys = SigningKeyPair.generate()
            self._save(keys.private_bytes, ACCOUNT_SIGNING_KEY)
            log.info(f"[KEYSTORE] created signing key fpr={keys.fingerprint}")
            return keys

        try:
            return SigningKeyPair.from_private_bytes(bytes(data))
        except ValueError as e:
            raise KeyStoreError(f"persisted {ACCOUNT_SIGNING_KEY} is not a valid Ed25519 key") from e
