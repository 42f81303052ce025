"""
LinkManager module for Linkpulse.

Responsibilities:
    - Create random short codes for validated URLs
    - Ensure no duplicates (one code per long URL, one record per code)
    - Resolve codes and record clicks into per-code analytics
    - Report per-code analytics, listings, system and memory statistics
    - Export/import the whole index in the snapshot format

Design notes:
    - Idempotent create: shortening a URL that already has a code returns
      that code with `existing_url=True`; nothing is reset.
    - Collision handling: regenerate while the candidate is taken, up to
      `max_code_attempts`; then fail with CodeExhaustedError instead of
      looping forever or overwriting.
    - Every create/record/import runs under the index lock, so lookups and
      writes form one step for concurrent callers.
    - A click against an unknown (or just-evicted) code is a no-op.
    - The clock is injectable (seconds, like `time.time`) for tests.

LLM Prompt Example:
    "Explain how a reverse index plus a bounded retry loop gives idempotent,
    collision-safe short-code creation without unbounded loops."
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..analytics.analytics import Analytics
from ..config import ShortenerConfig, settings
from ..errors import CodeExhaustedError, InvalidUrlError, LinkpulseError, NotFoundError, PersistenceError
from ..models import AccessEvent, AccessInfo, CreateResult, ShortUrlRecord, to_iso
from ..storage.base import BaseStorage
from ..validation.validator import normalize_url
from .strategies import BaseStrategy, RandomStrategy

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"
ONE_DAY_MS = 24 * 60 * 60 * 1000


class LinkManager:
    """
    Coordinates creation, lookup and click-recording rules for short URLs.

    LLM Prompt Example:
        "Show how DI of storage, analytics and a clock keeps a URL shortener's
        business rules testable with fresh instances per test."
    """

    def __init__(
        self,
        storage: BaseStorage,
        analytics: Optional[Analytics] = None,
        code_strategy: Optional[BaseStrategy] = None,
        config: Optional[ShortenerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize LinkManager with a storage backend and optional collaborators.

        Args:
            storage (BaseStorage): Index backend.
            analytics (Optional[Analytics]): Aggregator; built from config when omitted.
            code_strategy (Optional[BaseStrategy]): Code generator; random by default.
            config (Optional[ShortenerConfig]): Knobs; the env-driven settings by default.
            clock (Callable[[], float]): Current time in seconds.
        """
        self.config = config or settings
        self.storage = storage
        self.analytics = analytics or Analytics(
            history_limit=self.config.history_limit,
            ip_flag_threshold=self.config.ip_flag_threshold,
            agent_flag_threshold=self.config.agent_flag_threshold,
        )
        self.code_strategy = code_strategy or RandomStrategy(
            alphabet=self.config.alphabet, length=self.config.code_length
        )
        self.code_length = self.config.code_length
        self.max_code_attempts = self.config.max_code_attempts
        self.clock = clock

    def now(self) -> int:
        """Current time in epoch milliseconds."""
        return int(self.clock() * 1000)

    # ---------------------------------------------------------------------
    # Short-URL index
    # ---------------------------------------------------------------------
    def create_short_url(self, original_url: str) -> CreateResult:
        """
        Create (or return the existing) short code for a URL.

        Rules:
            - Normalize first (blocked schemes rejected, scheme and host
              case-folded, surrounding whitespace stripped), then dedupe and
              store the canonical form.
            - Dedupe by long URL via the reverse index (idempotent).
            - Otherwise draw random codes until one is free, at most
              `max_code_attempts` times.
            - Insert record, bucket and reverse mapping together.

        Returns:
            CreateResult: code, URL, `existing_url` flag and creation time.

        Raises:
            InvalidUrlError: URL failed validation.
            CodeExhaustedError: every candidate collided.
        """
        normalized = normalize_url(original_url)
        if not normalized.valid:
            raise InvalidUrlError(normalized.error)
        original_url = normalized.url

        with self.storage.lock:
            existing_code = self.storage.find_code_by_url(original_url)
            if existing_code is not None:
                existing = self.storage.get_record(existing_code)
                return CreateResult(
                    short_code=existing_code,
                    original_url=original_url,
                    existing_url=True,
                    created_at=existing.created_at if existing else self.now(),
                )

            for _ in range(self.max_code_attempts):
                candidate = self.code_strategy.generate(length=self.code_length)
                if self.storage.get_record(candidate) is None:
                    break
            else:
                logger.error(
                    "Unable to generate unique short code after %d attempts (%d codes live)",
                    self.max_code_attempts, len(self.storage),
                )
                raise CodeExhaustedError("Unable to generate unique short code")

            record = ShortUrlRecord(short_code=candidate, original_url=original_url, created_at=self.now())
            if not self.storage.insert(record, self.analytics.new_bucket()):
                raise LinkpulseError("Failed to create short URL")

        logger.debug("Created %s -> %s", record.short_code, original_url)
        return CreateResult(
            short_code=record.short_code,
            original_url=original_url,
            existing_url=False,
            created_at=record.created_at,
        )

    def get_url(self, short_code: str) -> Optional[ShortUrlRecord]:
        """Return the record for a code, or None."""
        return self.storage.get_record(short_code)

    def get_original_url(self, short_code: str) -> ShortUrlRecord:
        """
        Resolve a short code.

        Raises:
            NotFoundError: the code is not live.
        """
        record = self.storage.get_record(short_code)
        if record is None:
            raise NotFoundError(short_code)
        return record

    def record_click(self, short_code: str, access_info: Optional[AccessInfo] = None) -> bool:
        """
        Record one access to a short code.

        Args:
            short_code (str): Code that was hit.
            access_info (Optional[AccessInfo]): RawRequestInfo or EnrichedAccessInfo,
                resolved by the caller. None records an anonymous access.

        Returns:
            bool: True if recorded, False if the code is unknown (never raises
            for unknown codes; clicks can race with eviction).
        """
        timestamp = self.now()
        event = access_info.to_event(timestamp) if access_info is not None else AccessEvent(timestamp=timestamp)

        with self.storage.lock:
            record = self.storage.get_record(short_code)
            bucket = self.storage.get_bucket(short_code)
            if record is None or bucket is None:
                return False
            record.click_count += 1
            record.last_accessed_at = timestamp
            self.analytics.record_access(short_code, bucket, event)
        return True

    def get_all_urls(self) -> List[Dict[str, Any]]:
        """All live records as summaries, newest first."""
        records = sorted(self.storage.records(), key=lambda r: r.created_at, reverse=True)
        return [record.summary() for record in records]

    # ---------------------------------------------------------------------
    # Analytics & statistics
    # ---------------------------------------------------------------------
    def get_analytics(self, short_code: str) -> Optional[Dict[str, Any]]:
        """Per-code analytics summary, or None for an unknown code."""
        now = self.now()
        with self.storage.lock:
            record = self.storage.get_record(short_code)
            bucket = self.storage.get_bucket(short_code)
            if record is None or bucket is None:
                return None
            return self.analytics.summarize(record, bucket, now)

    def get_system_stats(self) -> Dict[str, Any]:
        """
        Totals across the index (O(N) scan).

        Returns:
            dict: total_urls, total_clicks, recent_urls (created in the last
            24h), recent_clicks (retained history events in the last 24h),
            timestamp.
        """
        now = self.now()
        total_clicks = recent_urls = recent_clicks = 0
        with self.storage.lock:
            buckets = self.storage.buckets()
            records = self.storage.records()
            for record in records:
                total_clicks += record.click_count
                if now - record.created_at < ONE_DAY_MS:
                    recent_urls += 1
                bucket = buckets.get(record.short_code)
                if bucket is not None:
                    recent_clicks += sum(1 for e in bucket.history if now - e.timestamp < ONE_DAY_MS)
        return {
            "total_urls": len(records),
            "total_clicks": total_clicks,
            "recent_urls": recent_urls,
            "recent_clicks": recent_clicks,
            "timestamp": to_iso(now),
        }

    def get_memory_stats(self) -> Dict[str, Any]:
        """Sizes of the three maps and retained history, against configured bounds."""
        with self.storage.lock:
            total_urls = len(self.storage)
            buckets = self.storage.buckets()
            reverse_size = self.storage.reverse_size()
            history_events = sum(len(b.history) for b in buckets.values())
        capacity = self.config.capacity
        return {
            "total_urls": total_urls,
            "reverse_index_size": reverse_size,
            "analytics_buckets": len(buckets),
            "history_events": history_events,
            "history_limit": self.config.history_limit,
            "capacity": capacity,
            "capacity_used_pct": round(100.0 * total_urls / capacity, 2) if capacity else 0.0,
        }

    # ---------------------------------------------------------------------
    # Snapshots
    # ---------------------------------------------------------------------
    def export_data(self) -> Dict[str, Any]:
        """
        Copy the whole index into the snapshot document.

        Returns:
            dict: {"version", "timestamp", "url_database", "analytics",
                   "url_to_short_code"}; the last three are lists of pairs.
        """
        data = self.storage.dump()
        return {"version": SNAPSHOT_VERSION, "timestamp": to_iso(self.now()), **data}

    def import_data(self, data: Mapping[str, Any]) -> int:
        """
        Replace the index with a snapshot document.

        Returns:
            int: number of records loaded.

        Raises:
            PersistenceError: unknown version, malformed or inconsistent document.
                The current index is left untouched in that case.
        """
        if not isinstance(data, Mapping):
            raise PersistenceError("Snapshot must be a JSON object")
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise PersistenceError(f"Unsupported snapshot version: {version!r}")
        try:
            records = {str(code): ShortUrlRecord.from_dict(rec) for code, rec in data["url_database"]}
            buckets = {str(code): self.analytics.load_bucket(b) for code, b in data["analytics"]}
            reverse = {str(url): str(code) for url, code in data["url_to_short_code"]}
            self.storage.load(records, buckets, reverse)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Invalid snapshot: {exc}") from exc

        logger.info("Imported snapshot with %d short URLs", len(records))
        return len(records)
