from __future__ import annotations
from typing import Optional
import os, sqlite3, threading
from connectall_core.logger import get_logger
from connectall_core.storage.provider import SecureStore

log = get_logger("ConnectAll.Storage.SQLite")


class SQLiteSecureStore(SecureStore):
    """
    File-backed secure store. Confidentiality of the file is left to the
    platform (file permissions / disk encryption); the file is created with
    owner-only permissions where the OS allows it.
    """

    def __init__(self, path="db/connectall_keystore.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()

        self._init()
        try:
            os.chmod(path, 0o600)
        except OSError:
            log.warning(f"[SQLITE] could not restrict permissions on {path}")

    def _init(self) -> None:
        c = self.db.cursor()
        c.execute("""CREATE TABLE IF NOT EXISTS secure_items(
            service TEXT NOT NULL,
            account TEXT NOT NULL,
            data BLOB NOT NULL,
            PRIMARY KEY(service, account)
        )""")
        self.db.commit()

    def save(self, data: bytes, account: str, service: str) -> None:
        with self._lock:
            self.db.execute(
                "INSERT INTO secure_items(service,account,data) VALUES(?,?,?) "
                "ON CONFLICT(service, account) DO UPDATE SET data=excluded.data",
                (service, account, sqlite3.Binary(data))
            )
            self.db.commit()

    def load(self, account: str, service: str) -> Optional[bytes]:
        with self._lock:
            cur = self.db.execute(
                "SELECT data FROM secure_items WHERE service=? AND account=?",
                (service, account)
            )
            row = cur.fetchone()
        if not row: return None
        return bytes(row[0])

    def delete(self, account: str, service: str) -> None:
        with self._lock:
            self.db.execute("DELETE FROM secure_items WHERE service=? AND account=?", (service, account))
            self.db.commit()

    def close(self):
        self.db.close()
