"""
Storage module for Linkpulse (in-memory short-URL index).

Responsibilities:
    - Own every ShortUrlRecord and its paired AnalyticsBucket
    - Maintain the reverse index (original URL -> short code) for O(1) dedupe
    - Keep forward index, reverse index and buckets consistent on every
      insert, evict and load
    - Serialize all three maps for snapshots

Design:
    - Plain dicts guarded by one re-entrant lock. Every mutation is short and
      non-blocking, so a single global lock is enough.
    - Dict insertion order doubles as creation order, which makes eviction
      ties (same millisecond) resolve oldest-inserted first.

LLM Prompt Example:
    "Show how you'd implement a secondary index on long URLs to support O(1)
     dedupe checks, and keep it consistent with the primary index on deletes."
"""

import threading
from typing import Any, Dict, List, Mapping, Optional

from .base import BaseStorage
from linkpulse.analytics.analytics import AnalyticsBucket
from linkpulse.models import ShortUrlRecord


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty index.

        Internal schema:
            self.url_database   = {short_code: ShortUrlRecord}
            self.analytics      = {short_code: AnalyticsBucket}
            self.url_to_code    = {original_url: short_code}
        """
        self.lock = threading.RLock()
        self.url_database: Dict[str, ShortUrlRecord] = {}
        self.analytics: Dict[str, AnalyticsBucket] = {}
        self.url_to_code: Dict[str, str] = {}

    def insert(self, record: ShortUrlRecord, bucket: AnalyticsBucket) -> bool:
        """
        Insert a new code with its bucket and reverse mapping.

        Rules:
            - Existing code -> reject (no silent overwrite).
            - URL already mapped -> reject (one code per URL).

        Returns:
            bool: True on success, False on collision.
        """
        with self.lock:
            if record.short_code in self.url_database or record.original_url in self.url_to_code:
                return False
            self.url_database[record.short_code] = record
            self.analytics[record.short_code] = bucket
            self.url_to_code[record.original_url] = record.short_code
            return True

    def get_record(self, short_code: str) -> Optional[ShortUrlRecord]:
        with self.lock:
            return self.url_database.get(short_code)

    def get_bucket(self, short_code: str) -> Optional[AnalyticsBucket]:
        with self.lock:
            return self.analytics.get(short_code)

    def find_code_by_url(self, url: str) -> Optional[str]:
        with self.lock:
            return self.url_to_code.get(url)

    def evict(self, short_code: str) -> bool:
        """
        Remove a code everywhere it appears.

        Returns:
            bool: True if the code was live, False if it was already gone.
        """
        with self.lock:
            record = self.url_database.pop(short_code, None)
            if record is None:
                return False
            self.analytics.pop(short_code, None)
            if self.url_to_code.get(record.original_url) == short_code:
                del self.url_to_code[record.original_url]
            return True

    def records(self) -> List[ShortUrlRecord]:
        with self.lock:
            return list(self.url_database.values())

    def buckets(self) -> Dict[str, AnalyticsBucket]:
        with self.lock:
            return dict(self.analytics)

    def reverse_size(self) -> int:
        with self.lock:
            return len(self.url_to_code)

    def dump(self) -> Dict[str, List[List[Any]]]:
        """
        Copy the index into plain data while holding the lock.

        Returns:
            dict: {"url_database": [[code, record], ...],
                   "analytics": [[code, bucket], ...],
                   "url_to_short_code": [[url, code], ...]}
        """
        with self.lock:
            return {
                "url_database": [[code, rec.to_dict()] for code, rec in self.url_database.items()],
                "analytics": [[code, bucket.to_dict()] for code, bucket in self.analytics.items()],
                "url_to_short_code": [[url, code] for url, code in self.url_to_code.items()],
            }

    def load(
        self,
        records: Mapping[str, ShortUrlRecord],
        buckets: Mapping[str, AnalyticsBucket],
        reverse: Mapping[str, str],
    ) -> None:
        """
        Replace the whole index after checking the three maps agree.

        Raises:
            ValueError: orphan bucket, record without bucket, or a reverse
                entry that does not round-trip to its record.
        """
        if set(records) != set(buckets):
            raise ValueError("Analytics buckets do not match short codes")
        if len(reverse) != len(records):
            raise ValueError("Reverse index size does not match short codes")
        for url, code in reverse.items():
            record = records.get(code)
            if record is None or record.original_url != url:
                raise ValueError(f"Reverse index entry for {url!r} does not match {code!r}")
        for code, record in records.items():
            if record.short_code != code:
                raise ValueError(f"Record keyed {code!r} carries code {record.short_code!r}")

        with self.lock:
            self.url_database = dict(records)
            self.analytics = dict(buckets)
            self.url_to_code = dict(reverse)

    def __len__(self) -> int:
        with self.lock:
            return len(self.url_database)
