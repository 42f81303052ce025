"""
Analytics module for Linkpulse.

Responsibilities:
    - Keep a bounded, FIFO history of access events per short code
    - Maintain daily (calendar date) and hourly (hour of day) rollups
    - Track per-address and per-agent concentration and raise advisory flags
    - Provide per-code summaries with a derived risk level

Design:
    - One AnalyticsBucket per short code, created together with its record and
      owned by the storage layer; this module only folds events into buckets.
    - History is a `deque(maxlen=history_limit)`, so appending past the cap
      drops the oldest entry.
    - `recent_clicks` scans the retained history (last hour). `daily_clicks`
      reads the `daily_counts` rollup for today (UTC), which the history cap
      does not affect.
    - Security signals are telemetry only; nothing here blocks a click.

LLM Prompt Example:
    "Explain how to keep per-key click analytics bounded in memory while still
    answering 'clicks in the last hour' and 'clicks today' cheaply."
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, Iterable, Mapping, Optional

from .base import BaseAnalytics
from linkpulse.models import AccessEvent, ShortUrlRecord, as_mapping, to_iso

logger = logging.getLogger(__name__)

ONE_HOUR_MS = 60 * 60 * 1000
TOP_IPS = 5


def utc_date(ms: int) -> str:
    """Calendar date (YYYY-MM-DD, UTC) for epoch milliseconds."""
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d")


def utc_hour(ms: int) -> int:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).hour


@dataclass
class SecuritySignals:
    ip_counts: Dict[str, int] = field(default_factory=dict)
    agent_counts: Dict[str, int] = field(default_factory=dict)
    flag_count: int = 0
    last_check: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip_counts": dict(self.ip_counts),
            "agent_counts": dict(self.agent_counts),
            "flag_count": self.flag_count,
            "last_check": self.last_check,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SecuritySignals":
        data = as_mapping(data, "security signals")
        last = data.get("last_check")
        return cls(
            ip_counts={str(k): int(v) for k, v in as_mapping(data.get("ip_counts"), "ip_counts").items()},
            agent_counts={str(k): int(v) for k, v in as_mapping(data.get("agent_counts"), "agent_counts").items()},
            flag_count=int(data.get("flag_count", 0)),
            last_check=int(last) if last is not None else None,
        )


class AnalyticsBucket:
    def __init__(self, history_limit: int = 1000, history: Optional[Iterable[AccessEvent]] = None):
        """
        Initialize an empty per-code aggregate.

        Internal schema:
            history:       deque[AccessEvent], oldest first, at most `history_limit`
            daily_counts:  {"2026-10-18": 42, ...}
            hourly_counts: {0..23: count}
            security:      SecuritySignals, created on the first recorded access
        """
        self.history: Deque[AccessEvent] = deque(history or (), maxlen=history_limit)
        self.daily_counts: Dict[str, int] = {}
        self.hourly_counts: Dict[int, int] = {}
        self.security: Optional[SecuritySignals] = None

    @property
    def history_limit(self) -> int:
        return self.history.maxlen or 0

    def trim_history(self, limit: int) -> int:
        """Keep only the most recent `limit` events. Returns how many were dropped."""
        excess = len(self.history) - limit
        if excess <= 0:
            return 0
        for _ in range(excess):
            self.history.popleft()
        return excess

    def drop_daily_counts_before(self, cutoff_date: str) -> int:
        """Remove daily rollup keys older than `cutoff_date` (YYYY-MM-DD)."""
        stale = [day for day in self.daily_counts if day < cutoff_date]
        for day in stale:
            del self.daily_counts[day]
        return len(stale)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": [event.to_dict() for event in self.history],
            "daily_counts": dict(self.daily_counts),
            # JSON object keys are strings; hours are restored to int on load
            "hourly_counts": {str(hour): count for hour, count in self.hourly_counts.items()},
            "security": self.security.to_dict() if self.security else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], history_limit: int = 1000) -> "AnalyticsBucket":
        data = as_mapping(data, "analytics bucket")
        bucket = cls(
            history_limit=history_limit,
            history=(AccessEvent.from_dict(e) for e in data.get("history") or ()),
        )
        bucket.daily_counts = {str(k): int(v) for k, v in as_mapping(data.get("daily_counts"), "daily_counts").items()}
        bucket.hourly_counts = {int(k): int(v) for k, v in as_mapping(data.get("hourly_counts"), "hourly_counts").items()}
        security = data.get("security")
        bucket.security = SecuritySignals.from_dict(security) if security else None
        return bucket


def calculate_risk_level(signals: SecuritySignals, total_clicks: int) -> str:
    """
    Weighted advisory score -> "low" | "medium" | "high" | "critical".

    Score:
        10 per flag
        + min(avg clicks per unique IP - 20, 50)     when the average is above 20
        + min(avg clicks per unique agent - 30, 30)  when the average is above 30
    Thresholds: >= 100 critical, >= 50 high, >= 20 medium.
    """
    score = signals.flag_count * 10.0

    avg_per_ip = total_clicks / max(1, len(signals.ip_counts))
    if avg_per_ip > 20:
        score += min(avg_per_ip - 20, 50)

    avg_per_agent = total_clicks / max(1, len(signals.agent_counts))
    if avg_per_agent > 30:
        score += min(avg_per_agent - 30, 30)

    if score >= 100:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 20:
        return "medium"
    return "low"


class Analytics(BaseAnalytics):
    def __init__(self, history_limit: int = 1000, ip_flag_threshold: int = 50, agent_flag_threshold: int = 100):
        """
        Args:
            history_limit (int): Access events kept per code (FIFO).
            ip_flag_threshold (int): Prior clicks from one address above which a click is flagged.
            agent_flag_threshold (int): Prior clicks from one user agent above which a click is flagged.
        """
        self.history_limit = history_limit
        self.ip_flag_threshold = ip_flag_threshold
        self.agent_flag_threshold = agent_flag_threshold

    def new_bucket(self) -> AnalyticsBucket:
        return AnalyticsBucket(history_limit=self.history_limit)

    def load_bucket(self, data: Mapping[str, Any]) -> AnalyticsBucket:
        return AnalyticsBucket.from_dict(data, history_limit=self.history_limit)

    def record_access(self, short_code: str, bucket: AnalyticsBucket, event: AccessEvent) -> bool:
        """
        Fold one access event into the bucket.

        Notes:
            - The history deque drops its oldest entry once the cap is reached.
            - A click is flagged when its address was already seen more than
              `ip_flag_threshold` times, or its agent more than
              `agent_flag_threshold` times, in this bucket's lifetime.

        Returns:
            bool: True if the click raised the bucket's flag count.
        """
        bucket.history.append(event)

        day = utc_date(event.timestamp)
        hour = utc_hour(event.timestamp)
        bucket.daily_counts[day] = bucket.daily_counts.get(day, 0) + 1
        bucket.hourly_counts[hour] = bucket.hourly_counts.get(hour, 0) + 1

        if bucket.security is None:
            bucket.security = SecuritySignals(last_check=event.timestamp)
        signals = bucket.security

        ip_seen = signals.ip_counts.get(event.source_address, 0)
        agent_seen = signals.agent_counts.get(event.client_agent, 0)
        signals.ip_counts[event.source_address] = ip_seen + 1
        signals.agent_counts[event.client_agent] = agent_seen + 1
        signals.last_check = event.timestamp

        if ip_seen > self.ip_flag_threshold or agent_seen > self.agent_flag_threshold:
            signals.flag_count += 1
            logger.warning(
                "Suspicious activity on %s: ip=%s (%d prior clicks), agent seen %d times",
                short_code, event.source_address, ip_seen, agent_seen,
            )
            return True
        return False

    def summarize(self, record: ShortUrlRecord, bucket: AnalyticsBucket, now: int) -> Dict[str, Any]:
        """
        Build the analytics summary for one code.

        Returns:
            dict: Example
                {
                    "short_code": "aB3xZ9",
                    "original_url": "https://example.com/a",
                    "total_clicks": 3,
                    "recent_clicks": 3,        # history entries within the last hour
                    "daily_clicks": 3,         # daily_counts for today's UTC date
                    "created_at": "...", "last_accessed_at": "...",
                    "daily_counts": {...}, "hourly_counts": {...},
                    "history": [...],          # full retained history, oldest first
                    "security": {...}          # only after the first click
                }
        """
        recent_clicks = sum(1 for event in bucket.history if now - event.timestamp < ONE_HOUR_MS)
        daily_clicks = bucket.daily_counts.get(utc_date(now), 0)

        result: Dict[str, Any] = {
            "short_code": record.short_code,
            "original_url": record.original_url,
            "total_clicks": record.click_count,
            "recent_clicks": recent_clicks,
            "daily_clicks": daily_clicks,
            "created_at": to_iso(record.created_at),
            "last_accessed_at": to_iso(record.last_accessed_at),
            "daily_counts": dict(bucket.daily_counts),
            "hourly_counts": dict(sorted(bucket.hourly_counts.items())),
            "history": [event.to_dict() for event in bucket.history],
        }

        signals = bucket.security
        if signals is not None:
            top_ips = sorted(signals.ip_counts.items(), key=lambda kv: kv[1], reverse=True)[:TOP_IPS]
            result["security"] = {
                "flag_count": signals.flag_count,
                "unique_ips": len(signals.ip_counts),
                "unique_agents": len(signals.agent_counts),
                "last_check": to_iso(signals.last_check),
                "top_ips": [{"ip": ip, "clicks": count} for ip, count in top_ips],
                "risk_level": calculate_risk_level(signals, record.click_count),
            }
        return result

    def daily_cutoff(self, now: int, retention_days: int) -> str:
        """Oldest calendar date kept by a sweep with `retention_days` retention."""
        today = datetime.fromtimestamp(now / 1000.0, tz=timezone.utc).date()
        return (today - timedelta(days=retention_days)).isoformat()
