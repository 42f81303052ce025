"""
Memory governor for Linkpulse.

Responsibilities:
    - Bound retained analytics: trim each bucket's history and drop daily
      rollups older than the retention window
    - Bound the index: evict the oldest-created codes above `capacity`,
      removing record, reverse entry and bucket together
    - Trigger persistence after a completed sweep

Sweep cycle:
    1. Skip if the previous sweep ran less than `sweep_interval_seconds` ago.
    2. Trim history / daily rollups in every bucket.
    3. Evict oldest-created records above capacity.
    4. Record the sweep time.

The whole sweep runs under the index lock, so a concurrent create cannot
interleave with eviction. A sweep either completes or is skipped.

LLM Prompt Example:
    "Design a debounced cleanup job for an in-memory cache that trims per-key
    history and evicts the oldest keys beyond a capacity bound."
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from linkpulse.manager.link_manager import LinkManager
from linkpulse.models import to_iso

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    started_at: int
    trimmed_buckets: int = 0
    trimmed_events: int = 0
    dropped_days: int = 0
    evicted: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "trimmed_buckets": self.trimmed_buckets,
            "trimmed_events": self.trimmed_events,
            "dropped_days": self.dropped_days,
            "evicted": list(self.evicted),
        }


class MemoryGovernor:
    def __init__(self, manager: LinkManager, persist: Optional[Callable[[], Any]] = None):
        """
        Args:
            manager (LinkManager): Index owner; its config supplies the bounds and its clock the time.
            persist (Optional[Callable]): Called after each completed sweep (e.g. a debounced backup).
        """
        self.manager = manager
        self.persist = persist
        config = manager.config
        self.capacity = config.capacity
        self.interval_ms = config.sweep_interval_seconds * 1000
        self.history_limit = config.sweep_history_limit
        self.retention_days = config.daily_retention_days
        self.last_sweep_at: Optional[int] = None

    def due(self, now: int) -> bool:
        return self.last_sweep_at is None or now - self.last_sweep_at >= self.interval_ms

    def sweep(self, force: bool = False) -> Optional[SweepReport]:
        """
        Run one sweep cycle.

        Args:
            force (bool): Ignore the debounce interval.

        Returns:
            Optional[SweepReport]: None if skipped by the debounce.
        """
        manager = self.manager
        storage = manager.storage
        now = manager.now()
        if not force and not self.due(now):
            return None

        report = SweepReport(started_at=now)
        cutoff = manager.analytics.daily_cutoff(now, self.retention_days)

        with storage.lock:
            for bucket in storage.buckets().values():
                dropped = bucket.trim_history(self.history_limit)
                if dropped:
                    report.trimmed_buckets += 1
                    report.trimmed_events += dropped
                report.dropped_days += bucket.drop_daily_counts_before(cutoff)

            excess = len(storage) - self.capacity
            if excess > 0:
                # sorted() is stable: equal timestamps keep insertion order
                oldest = sorted(storage.records(), key=lambda r: r.created_at)[:excess]
                for record in oldest:
                    if storage.evict(record.short_code):
                        report.evicted.append(record.short_code)

            self.last_sweep_at = now

        logger.info(
            "Memory sweep: trimmed %d events in %d buckets, dropped %d day keys, evicted %d codes",
            report.trimmed_events, report.trimmed_buckets, report.dropped_days, len(report.evicted),
        )

        if self.persist is not None:
            self.persist()
        return report

    def status(self) -> Dict[str, Any]:
        return {
            "last_sweep_at": to_iso(self.last_sweep_at),
            "sweep_interval_seconds": self.interval_ms // 1000,
            "capacity": self.capacity,
        }
