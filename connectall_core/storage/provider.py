# connectall_core/storage/provider.py
from __future__ import annotations
from typing import Optional


class SecureStore:
    """
    Keychain-equivalent secure key/value store.

    Items are addressed by (account, service). ``save`` replaces any existing
    item; ``load`` returns None when nothing is stored. Implementations raise
    on I/O failure rather than returning None, so callers can tell
    "never written" apart from "unreadable".
    """

    # Interface
    def save(self, data: bytes, account: str, service: str) -> None: ...
    def load(self, account: str, service: str) -> Optional[bytes]: ...
    def delete(self, account: str, service: str) -> None: ...
