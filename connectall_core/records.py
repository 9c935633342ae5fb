"""
connectall_core.records
-----------------------
Deterministic record of one verified card exchange.

connectionId = sha256hex( "|".join(sorted([me, peer])) + "|" + str(unix_ts) )

Sorting the pair makes the id independent of which side computes it, so
both peers derive the same id for the same encounter second. Self-pairing
(me == peer, e.g. loopback testing) is not special-cased: the pair collapses
to "x|x" and the id stays deterministic.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, Optional, Union
import json

from .constants import CONNECTION_ID_SEPARATOR
from .utils import now_utc, sha256

Timestamp = Union[datetime, int, float]


def connection_id(local_id: str, peer_id: str, unix_ts: Union[int, float]) -> str:
    ordered = CONNECTION_ID_SEPARATOR.join(sorted([local_id, peer_id]))
    raw = f"{ordered}{CONNECTION_ID_SEPARATOR}{int(unix_ts)}"
    return sha256(raw.encode("utf-8"))


def _to_datetime(ts: Timestamp) -> datetime:
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return ts
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def iso8601_utc(dt: datetime) -> str:
    # internet date-time with fractional seconds, e.g. 2023-11-14T22:13:20.000Z
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ConnectionRecord:
    connection_id: str
    method: str
    local_user_id: str
    peer_user_id: str
    peer_display_name: str
    peer_public_key_fingerprint_hex: str
    unix_timestamp: int
    iso8601_timestamp: str
    utc_offset_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connectionId": self.connection_id,
            "method": self.method,
            "meUserId": self.local_user_id,
            "peerUserId": self.peer_user_id,
            "peerDisplayName": self.peer_display_name,
            "peerPubKeyFingerprint": self.peer_public_key_fingerprint_hex,
            "unixTs": self.unix_timestamp,
            "iso8601": self.iso8601_timestamp,
            "timezoneSecondsFromGMT": self.utc_offset_seconds,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionRecord":
        return cls(
            connection_id=data["connectionId"],
            method=data["method"],
            local_user_id=data["meUserId"],
            peer_user_id=data["peerUserId"],
            peer_display_name=data["peerDisplayName"],
            peer_public_key_fingerprint_hex=data["peerPubKeyFingerprint"],
            unix_timestamp=int(data["unixTs"]),
            iso8601_timestamp=data["iso8601"],
            utc_offset_seconds=int(data["timezoneSecondsFromGMT"]),
        )


class ConnectionRecordFactory:
    """
    Builds ConnectionRecords. ``clock`` returns the current aware datetime and
    ``local_tz`` fixes the zone used for the display offset (system zone when
    None); both exist so tests can pin them.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, local_tz: Optional[tzinfo] = None):
        self.clock = clock or now_utc
        self.local_tz = local_tz

    def _utc_offset_seconds(self, dt: datetime) -> int:
        local = dt.astimezone(self.local_tz) if self.local_tz else dt.astimezone()
        offset = local.utcoffset()
        return int(offset.total_seconds()) if offset else 0

    def create(
        self,
        method: str,
        local_id: str,
        peer_id: str,
        peer_display_name: str,
        peer_fingerprint: str,
        timestamp: Optional[Timestamp] = None,
    ) -> ConnectionRecord:
        dt = _to_datetime(self.clock() if timestamp is None else timestamp)
        unix_ts = int(dt.timestamp())
        return ConnectionRecord(
            connection_id=connection_id(local_id, peer_id, unix_ts),
            method=method,
            local_user_id=local_id,
            peer_user_id=peer_id,
            peer_display_name=peer_display_name,
            peer_public_key_fingerprint_hex=peer_fingerprint,
            unix_timestamp=unix_ts,
            iso8601_timestamp=iso8601_utc(dt),
            utc_offset_seconds=self._utc_offset_seconds(dt),
        )
