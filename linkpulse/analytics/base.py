"""
Abstract Base Class for Analytics Backends.

Responsibilities:
    - Define required methods for any analytics implementation
    - Support easy substitution (e.g., in-memory buckets, event stream, external metrics)

LLM Prompt Example:
    "Create an abstract base class for analytics that defines record_access and summarize
    methods, and explain how to mark abstract methods to be excluded from coverage."
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from linkpulse.models import AccessEvent, ShortUrlRecord

__all__ = ["BaseAnalytics"]


class BaseAnalytics(ABC):
    """Abstract base for pluggable analytics backends."""

    @abstractmethod
    def new_bucket(self) -> Any:  # pragma: no cover
        """Return an empty per-code aggregate."""
        raise NotImplementedError

    @abstractmethod
    def record_access(self, short_code: str, bucket: Any, event: AccessEvent) -> bool:  # pragma: no cover
        """
        Fold one access event into a bucket.

        Returns:
            bool: True if the event raised a security flag.
        """
        raise NotImplementedError

    @abstractmethod
    def summarize(self, record: ShortUrlRecord, bucket: Any, now: int) -> Dict[str, Any]:  # pragma: no cover
        """
        Provide the analytics summary for one short code.

        Args:
            record (ShortUrlRecord): The code's record (click totals, timestamps).
            bucket: The code's aggregate.
            now (int): Reference time in epoch milliseconds.
        """
        raise NotImplementedError
