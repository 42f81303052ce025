"""
Runtime configuration for Linkpulse
===================================

Simple settings module that reads from environment variables (only here),
and exposes a stable `settings` object for the rest of the codebase.
Avoid reading env vars anywhere else: import from this module instead, or
build a `ShortenerConfig(...)` explicitly (tests do this for isolation).

Short codes
-----------
- LINKPULSE_CODE_LENGTH        : int length; default 6; clamped to [4, 32]
- LINKPULSE_CODE_ALPHABET      : characters to draw from (default 62 alphanumerics)
- LINKPULSE_MAX_CODE_ATTEMPTS  : generation retries before giving up (default 100)

Analytics
---------
- LINKPULSE_HISTORY_LIMIT        : per-code access events kept on record (default 1000)
- LINKPULSE_IP_FLAG_THRESHOLD    : clicks from one address before flagging (default 50)
- LINKPULSE_AGENT_FLAG_THRESHOLD : clicks from one user agent before flagging (default 100)

Memory governor
---------------
- LINKPULSE_CAPACITY               : max live short codes (default 50000)
- LINKPULSE_SWEEP_INTERVAL         : seconds between sweeps (default 1800)
- LINKPULSE_SWEEP_HISTORY_LIMIT    : history bound enforced by a sweep (default 2000)
- LINKPULSE_DAILY_RETENTION_DAYS   : daily rollup days kept (default 30)

Backups
-------
- LINKPULSE_BACKUP_ENABLED    : "1"/"true" (default) or "0"/"false"
- LINKPULSE_BACKUP_DIR        : snapshot directory (default "backups")
- LINKPULSE_BACKUP_INTERVAL   : seconds between snapshots (default 300)
- LINKPULSE_BACKUP_RETENTION  : snapshots kept on disk (default 10)

Logging
-------
- LINKPULSE_LOG_LEVEL : default "INFO"
"""

import os
import string
from dataclasses import dataclass

DEFAULT_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except Exception:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ShortenerConfig:
    # -------- Short-code generation --------
    code_length: int = 6
    alphabet: str = DEFAULT_ALPHABET
    max_code_attempts: int = 100

    # -------- Analytics --------
    history_limit: int = 1000
    ip_flag_threshold: int = 50
    agent_flag_threshold: int = 100

    # -------- Memory governor --------
    capacity: int = 50_000
    sweep_interval_seconds: int = 30 * 60
    sweep_history_limit: int = 2000
    daily_retention_days: int = 30

    # -------- Backups --------
    backup_enabled: bool = True
    backup_dir: str = "backups"
    backup_interval_seconds: int = 5 * 60
    backup_retention: int = 10

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ShortenerConfig":
        """Build a config from LINKPULSE_* variables, falling back to defaults."""
        return cls(
            code_length=max(4, min(32, _get_int("LINKPULSE_CODE_LENGTH", 6))),
            alphabet=os.getenv("LINKPULSE_CODE_ALPHABET", DEFAULT_ALPHABET) or DEFAULT_ALPHABET,
            max_code_attempts=max(1, _get_int("LINKPULSE_MAX_CODE_ATTEMPTS", 100)),
            history_limit=max(1, _get_int("LINKPULSE_HISTORY_LIMIT", 1000)),
            ip_flag_threshold=_get_int("LINKPULSE_IP_FLAG_THRESHOLD", 50),
            agent_flag_threshold=_get_int("LINKPULSE_AGENT_FLAG_THRESHOLD", 100),
            capacity=max(1, _get_int("LINKPULSE_CAPACITY", 50_000)),
            sweep_interval_seconds=max(1, _get_int("LINKPULSE_SWEEP_INTERVAL", 30 * 60)),
            sweep_history_limit=max(1, _get_int("LINKPULSE_SWEEP_HISTORY_LIMIT", 2000)),
            daily_retention_days=_get_int("LINKPULSE_DAILY_RETENTION_DAYS", 30),
            backup_enabled=_get_bool("LINKPULSE_BACKUP_ENABLED", True),
            backup_dir=os.getenv("LINKPULSE_BACKUP_DIR", "backups"),
            backup_interval_seconds=max(1, _get_int("LINKPULSE_BACKUP_INTERVAL", 5 * 60)),
            backup_retention=max(1, _get_int("LINKPULSE_BACKUP_RETENTION", 10)),
            log_level=os.getenv("LINKPULSE_LOG_LEVEL", "INFO").strip().upper(),
        )


settings = ShortenerConfig.from_env()
