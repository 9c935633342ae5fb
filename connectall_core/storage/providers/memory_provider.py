import threading
from typing import Dict, Optional, Tuple
from connectall_core.storage.provider import SecureStore


class InMemorySecureStore(SecureStore):
    def __init__(self):
        self.items: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def save(self, data: bytes, account: str, service: str) -> None:
        with self._lock:
            self.items[(service, account)] = bytes(data)

    def load(self, account: str, service: str) -> Optional[bytes]:
        with self._lock:
            return self.items.get((service, account))

    def delete(self, account: str, service: str) -> None:
        with self._lock:
            self.items.pop((service, account), None)
