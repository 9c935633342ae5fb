# connectall_core/config.py
from __future__ import annotations
import os
import socket
from dataclasses import dataclass, field

from .constants import DEFAULT_SEND_TIMEOUT, KEYSTORE_SERVICE, METHOD_MULTIPEER


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ExchangeConfig:
    """
    Runtime settings for a ConnectAll node. ``from_env()`` reads the
    CONNECTALL_* variables; explicit construction is used by tests.
    """
    display_name: str = field(default_factory=socket.gethostname)
    service: str = KEYSTORE_SERVICE
    store_provider: str = "sqlite"     # "sqlite"|"memory"
    db_path: str = "db/connectall_keystore.db"
    transport: str = "local"
    method: str = METHOD_MULTIPEER     # recorded on every ConnectionRecord
    auto_accept: bool = True           # accept inbound invitations without asking
    send_timeout: float = DEFAULT_SEND_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        return cls(
            display_name=os.getenv("CONNECTALL_DISPLAY_NAME") or socket.gethostname(),
            service=os.getenv("CONNECTALL_SERVICE", KEYSTORE_SERVICE),
            store_provider=os.getenv("CONNECTALL_STORE_PROVIDER", "sqlite").lower(),
            db_path=os.getenv("CONNECTALL_DB_PATH", "db/connectall_keystore.db"),
            transport=os.getenv("CONNECTALL_TRANSPORT", "local").lower(),
            method=os.getenv("CONNECTALL_METHOD", METHOD_MULTIPEER),
            auto_accept=_env_flag("CONNECTALL_AUTO_ACCEPT", "1"),
            send_timeout=float(os.getenv("CONNECTALL_SEND_TIMEOUT", str(DEFAULT_SEND_TIMEOUT))),
            log_level=os.getenv("CONNECTALL_LOG_LEVEL", "INFO").upper(),
        )

    def store_config(self) -> dict:
        return {"provider": self.store_provider, "sqlite_path": self.db_path}

    def transport_config(self) -> dict:
        return {"transport": self.transport, "peer": self.display_name}
