"""
connectall_core.runtime
-----------------------
One-time process initialization.

The process entry point calls ``bootstrap()`` exactly once. It loads the
persisted identity (a KeyStoreError aborts startup, there is no ephemeral
fallback) and wires every component by constructor injection; nothing in the
package reaches for a global identity.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .config import ExchangeConfig
from .identity import IdentityKeyStore, LocalIdentity, SigningKeyPair
from .ledger import ConnectionLedger
from .logger import get_logger
from .orchestrator import AcceptPolicy, ExchangeOrchestrator, OutcomeHandler
from .peers import PeerDirectory
from .storage import SecureStore, load_secure_store
from .transport import BaseTransport, transport_factory


@dataclass
class ConnectAllRuntime:
    config: ExchangeConfig
    identity: LocalIdentity
    keys: SigningKeyPair
    ledger: ConnectionLedger
    directory: PeerDirectory
    transport: BaseTransport
    orchestrator: ExchangeOrchestrator


def bootstrap(
    config: Optional[ExchangeConfig] = None,
    store: Optional[SecureStore] = None,
    transport: Optional[BaseTransport] = None,
    accept_policy: Optional[AcceptPolicy] = None,
    on_outcome: Optional[OutcomeHandler] = None,
) -> ConnectAllRuntime:
    config = config or ExchangeConfig.from_env()
    log = get_logger("ConnectAll", level=config.log_level)

    store = store or load_secure_store(config.store_config())
    identity, keys = IdentityKeyStore(store, service=config.service).load_or_create()

    transport = transport or transport_factory(config.transport_config())
    ledger = ConnectionLedger()
    directory = PeerDirectory()
    orchestrator = ExchangeOrchestrator(
        identity,
        keys,
        transport,
        ledger,
        config=config,
        directory=directory,
        accept_policy=accept_policy,
        on_outcome=on_outcome,
    )
    log.info(f"[BOOT] user_id={identity.id} display_name={config.display_name} transport={transport.name}")
    return ConnectAllRuntime(
        config=config,
        identity=identity,
        keys=keys,
        ledger=ledger,
        directory=directory,
        transport=transport,
        orchestrator=orchestrator,
    )
