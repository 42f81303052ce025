"""
Error taxonomy for Linkpulse.

InvalidUrlError and NotFoundError are expected, caller-recoverable conditions.
CodeExhaustedError and PersistenceError are operational: they get logged and
surfaced, but the index keeps serving when they happen.
"""


class LinkpulseError(Exception):
    """Base class for every error raised by the shortening core."""


class InvalidUrlError(LinkpulseError, ValueError):
    """Malformed URL or disallowed scheme."""


class NotFoundError(LinkpulseError, LookupError):
    """Unknown short code."""

    def __init__(self, short_code: str):
        super().__init__(f"Short URL not found: {short_code}")
        self.short_code = short_code


class CodeExhaustedError(LinkpulseError):
    """Every generated candidate collided with an existing code."""


class PersistenceError(LinkpulseError):
    """Snapshot write, read or decode failure."""
