"""
Base storage interface for the Linkpulse short-URL index.

Purpose:
    Define a small, stable contract for the index that owns every
    ShortUrlRecord, its AnalyticsBucket, and the reverse (url -> code) map,
    so business logic never touches the underlying maps directly.

Contract:
    - Forward index, reverse index and buckets change together in one call.
    - `lock` is a re-entrant lock scoped to the whole index. Single calls take
      it internally; callers composing several calls into one logical step
      (lookup-then-insert, read-then-mutate) hold it around the sequence.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a narrow, explicit storage interface enables dependency
    injection and easy backend swapping without touching service code."
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from linkpulse.analytics.analytics import AnalyticsBucket
from linkpulse.models import ShortUrlRecord


class BaseStorage(ABC):
    """Abstract base class for index backends."""

    lock: Any

    @abstractmethod  # pragma: no cover
    def insert(self, record: ShortUrlRecord, bucket: AnalyticsBucket) -> bool:
        """
        Insert a record, its bucket and its reverse mapping as one step.

        Returns:
            bool: False if the code or the URL is already present (nothing written).
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_record(self, short_code: str) -> Optional[ShortUrlRecord]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_bucket(self, short_code: str) -> Optional[AnalyticsBucket]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def find_code_by_url(self, url: str) -> Optional[str]:
        """Return the existing code for a URL via the reverse index."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def evict(self, short_code: str) -> bool:
        """Remove record, bucket and reverse entry together. False if absent."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def records(self) -> List[ShortUrlRecord]:
        """Point-in-time list of live records, in insertion order."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def buckets(self) -> Dict[str, AnalyticsBucket]:
        """Point-in-time shallow copy of the code -> bucket map."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def reverse_size(self) -> int:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def dump(self) -> Dict[str, List[List[Any]]]:
        """Serialize all three maps as parallel lists of pairs."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def load(
        self,
        records: Mapping[str, ShortUrlRecord],
        buckets: Mapping[str, AnalyticsBucket],
        reverse: Mapping[str, str],
    ) -> None:
        """Replace the whole index. Raises ValueError if the maps disagree."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def __len__(self) -> int:
        raise NotImplementedError
