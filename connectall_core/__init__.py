"""
ConnectAll Core Package
=======================
Signed identity-card exchange between nearby devices and deterministic
connection records.

Provides:
- Persistent identity + Ed25519 signing key (IdentityKeyStore)
- Canonical signed card envelopes (CardCodec)
- Order-independent connection ids (ConnectionRecordFactory)
- Append-only encounter ledger (ConnectionLedger)
- Per-peer handshake state machine (ExchangeOrchestrator)
"""

from .codec import CardCodec, fingerprint
from .config import ExchangeConfig
from .envelope import CardPayload, Envelope
from .errors import (
    ConnectAllError,
    DecodeError,
    InvalidPublicKey,
    KeyStoreError,
    MalformedPayload,
    MissingField,
    SignatureInvalid,
    TransportError,
)
from .identity import IdentityKeyStore, LocalIdentity, SigningKeyPair
from .ledger import ConnectionLedger
from .orchestrator import ExchangeOrchestrator, SessionState
from .records import ConnectionRecord, ConnectionRecordFactory, connection_id
from .runtime import ConnectAllRuntime, bootstrap

__version__ = "0.1.0"
