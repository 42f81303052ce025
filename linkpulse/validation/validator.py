"""
URL validation for Linkpulse.

Responsibilities:
    - `is_valid_url`: absolute http/https URL with a host, never raises
    - `normalize_url`: reject dangerous schemes before parsing, then return
      the canonical form of the URL

`normalize_url` must run before `is_valid_url` is trusted for redirect
targets: a naive protocol check can be bypassed by scheme smuggling
(mixed case, leading whitespace or control characters).

LLM Prompt Example:
    "Explain secure URL validation rules to prevent open redirect or
    javascript: scheme abuse."
"""

import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

ALLOWED_SCHEMES = frozenset({"http", "https"})
BLOCKED_SCHEMES = ("javascript:", "data:", "vbscript:", "file:", "ftp:")

# C0 controls and whitespace that browsers strip or ignore inside schemes
_SCHEME_NOISE = re.compile(r"[\x00-\x20\x7f]")


@dataclass(frozen=True)
class NormalizedUrl:
    url: Optional[str]
    valid: bool
    error: Optional[str] = None


def is_valid_url(candidate: Any) -> bool:
    """
    Return True only for an absolute URL whose scheme is exactly http or https.

    Non-strings, empty strings and unparsable input return False.
    """
    if not isinstance(candidate, str) or not candidate:
        return False
    try:
        parsed = urlsplit(candidate)
        hostname = parsed.hostname
    except ValueError:
        return False
    return parsed.scheme in ALLOWED_SCHEMES and bool(parsed.netloc) and bool(hostname)


def normalize_url(candidate: Any) -> NormalizedUrl:
    """
    Reject blocked schemes case-insensitively, then parse and canonicalize.

    Canonical form lowercases the scheme and host and uses "/" for an empty
    path, like a browser's `href`.

    Returns:
        NormalizedUrl: `valid=False` with an `error` message on rejection.
    """
    if not isinstance(candidate, str):
        return NormalizedUrl(url=None, valid=False, error="URL must be a string")

    stripped = candidate.strip()
    if not stripped:
        return NormalizedUrl(url=None, valid=False, error="URL is required")

    probe = _SCHEME_NOISE.sub("", stripped).lower()
    for scheme in BLOCKED_SCHEMES:
        if probe.startswith(scheme):
            return NormalizedUrl(url=None, valid=False, error=f"Blocked URL scheme: {scheme}")

    if not is_valid_url(stripped):
        return NormalizedUrl(url=None, valid=False, error="Invalid URL format")

    parts = urlsplit(stripped)
    # Keep userinfo and port as given; only the host is case-folded
    userinfo, at, hostport = parts.netloc.rpartition("@")
    if ":" in hostport and not hostport.endswith("]"):
        host, colon, port = hostport.rpartition(":")
    else:
        host, colon, port = hostport, "", ""
    netloc = f"{userinfo}{at}{host.lower()}{colon}{port}"

    canonical = urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", parts.query, parts.fragment))
    return NormalizedUrl(url=canonical, valid=True)
