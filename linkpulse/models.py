"""
Domain records for Linkpulse.

Responsibilities:
    - ShortUrlRecord: one live short code and its click counters
    - AccessEvent: one recorded access, kept inside an AnalyticsBucket
    - RawRequestInfo / EnrichedAccessInfo: the two shapes a caller may hand
      to `record_click`, resolved by the caller (no runtime shape-sniffing)
    - CreateResult: outcome of `create_short_url`

Timestamps are integer epoch milliseconds throughout; `to_iso` renders them
for API responses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union


def to_iso(ms: Optional[int]) -> Optional[str]:
    """Render epoch milliseconds as an ISO-8601 UTC string (None passes through)."""
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).isoformat()


def as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    """Return `value` if it is a JSON object (None reads as empty); raise TypeError otherwise."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{what} must be an object, got {type(value).__name__}")
    return value


@dataclass
class ShortUrlRecord:
    short_code: str
    original_url: str
    created_at: int
    click_count: int = 0
    last_accessed_at: Optional[int] = None

    def summary(self) -> Dict[str, Any]:
        """Public listing shape used by `get_all_urls`."""
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "clicks": self.click_count,
            "created_at": to_iso(self.created_at),
            "last_accessed_at": to_iso(self.last_accessed_at),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "created_at": self.created_at,
            "click_count": self.click_count,
            "last_accessed_at": self.last_accessed_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShortUrlRecord":
        data = as_mapping(data, "url record")
        last = data.get("last_accessed_at")
        return cls(
            short_code=str(data["short_code"]),
            original_url=str(data["original_url"]),
            created_at=int(data["created_at"]),
            click_count=int(data.get("click_count", 0)),
            last_accessed_at=int(last) if last is not None else None,
        )


@dataclass
class AccessEvent:
    timestamp: int
    source_address: str = "unknown"
    client_agent: str = ""
    session_id: Optional[str] = None
    # Opaque pass-through enrichment (behavior, geography, referrer, ...)
    tags: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "source_address": self.source_address,
            "client_agent": self.client_agent,
            "session_id": self.session_id,
            "tags": dict(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccessEvent":
        data = as_mapping(data, "history event")
        return cls(
            timestamp=int(data["timestamp"]),
            source_address=str(data.get("source_address") or "unknown"),
            client_agent=str(data.get("client_agent") or ""),
            session_id=data.get("session_id"),
            tags=dict(as_mapping(data.get("tags"), "event tags")),
        )


@dataclass
class RawRequestInfo:
    """
    Transport-level view of an incoming request.

    The HTTP layer builds this from the peer address and the request headers;
    address and agent are extracted here, best-effort.
    """
    peer_address: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def _header(self, name: str) -> str:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value or ""
        return ""

    def client_address(self) -> str:
        if self.peer_address:
            return self.peer_address
        forwarded = self._header("x-forwarded-for").split(",")[0].strip()
        return forwarded or "unknown"

    def to_event(self, timestamp: int) -> AccessEvent:
        return AccessEvent(
            timestamp=timestamp,
            source_address=self.client_address(),
            client_agent=self._header("user-agent"),
        )


@dataclass
class EnrichedAccessInfo:
    """Pre-built access payload with optional session id and opaque tags."""
    source_address: str = "unknown"
    client_agent: str = ""
    session_id: Optional[str] = None
    tags: Dict[str, Any] = field(default_factory=dict)

    def to_event(self, timestamp: int) -> AccessEvent:
        return AccessEvent(
            timestamp=timestamp,
            source_address=self.source_address or "unknown",
            client_agent=self.client_agent or "",
            session_id=self.session_id,
            tags=dict(self.tags),
        )


AccessInfo = Union[RawRequestInfo, EnrichedAccessInfo]


@dataclass(frozen=True)
class CreateResult:
    short_code: str
    original_url: str
    existing_url: bool
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "existing_url": self.existing_url,
            "created_at": to_iso(self.created_at),
        }
