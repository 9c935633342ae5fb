import pytest

from connectall_core import ExchangeConfig, KeyStoreError, SessionState, bootstrap
from connectall_core.events import CardRecorded
from connectall_core.storage import InMemorySecureStore
from connectall_core.transport import LocalAdapter, LocalMesh


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("CONNECTALL_DISPLAY_NAME", "Alice")
    monkeypatch.setenv("CONNECTALL_STORE_PROVIDER", "MEMORY")
    monkeypatch.setenv("CONNECTALL_AUTO_ACCEPT", "no")
    monkeypatch.setenv("CONNECTALL_SEND_TIMEOUT", "1.5")
    monkeypatch.setenv("CONNECTALL_METHOD", "nearby")

    cfg = ExchangeConfig.from_env()
    assert cfg.display_name == "Alice"
    assert cfg.store_provider == "memory"
    assert cfg.auto_accept is False
    assert cfg.send_timeout == 1.5
    assert cfg.method == "nearby"
    assert cfg.store_config()["provider"] == "memory"


def test_bootstrap_wires_components():
    store = InMemorySecureStore()
    mesh = LocalMesh()
    rt = bootstrap(
        ExchangeConfig(display_name="Alice", store_provider="memory"),
        store=store,
        transport=LocalAdapter("alice-phone", mesh),
    )

    assert rt.orchestrator.identity == rt.identity
    assert rt.orchestrator.ledger is rt.ledger
    assert rt.orchestrator.directory is rt.directory
    assert store.load("userId", "conn.app") == rt.identity.id.encode("utf-8")

    again = bootstrap(ExchangeConfig(display_name="Alice"), store=store, transport=LocalAdapter("x", LocalMesh()))
    assert again.identity == rt.identity
    assert again.keys == rt.keys


def test_bootstrap_aborts_on_corrupt_identity():
    store = InMemorySecureStore()
    store.save(b"a1", "userId", "conn.app")
    store.save(b"corrupt", "sk.signing", "conn.app")

    with pytest.raises(KeyStoreError):
        bootstrap(ExchangeConfig(display_name="Alice"), store=store, transport=LocalAdapter("a", LocalMesh()))


def test_two_runtimes_exchange_cards():
    mesh = LocalMesh()
    outcomes = []
    alice = bootstrap(
        ExchangeConfig(display_name="Alice"),
        store=InMemorySecureStore(),
        transport=LocalAdapter("alice-phone", mesh),
        on_outcome=outcomes.append,
    )
    bob = bootstrap(
        ExchangeConfig(display_name="Bob"),
        store=InMemorySecureStore(),
        transport=LocalAdapter("bob-phone", mesh),
    )
    alice.orchestrator.start()
    bob.orchestrator.start()
    alice.orchestrator.invite("bob-phone")

    assert alice.orchestrator.session_state("bob-phone") is SessionState.RECORDED
    assert alice.ledger.latest().peer_user_id == bob.identity.id
    assert bob.ledger.latest().peer_user_id == alice.identity.id
    assert any(isinstance(o, CardRecorded) for o in outcomes)
