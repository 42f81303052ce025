"""
Unit tests for env-driven configuration.
"""

from linkpulse.config import DEFAULT_ALPHABET, ShortenerConfig


def test_defaults():
    config = ShortenerConfig()
    assert config.code_length == 6
    assert len(config.alphabet) == 62 and config.alphabet == DEFAULT_ALPHABET
    assert config.max_code_attempts == 100
    assert config.history_limit == 1000
    assert config.sweep_history_limit == 2000
    assert config.capacity == 50_000
    assert config.sweep_interval_seconds == 1800
    assert config.backup_interval_seconds == 300
    assert config.backup_retention == 10
    assert config.ip_flag_threshold == 50
    assert config.agent_flag_threshold == 100


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("LINKPULSE_CODE_LENGTH", "8")
    monkeypatch.setenv("LINKPULSE_CAPACITY", "10")
    monkeypatch.setenv("LINKPULSE_BACKUP_ENABLED", "false")
    monkeypatch.setenv("LINKPULSE_BACKUP_DIR", "/tmp/snapshots")
    monkeypatch.setenv("LINKPULSE_LOG_LEVEL", "debug")
    config = ShortenerConfig.from_env()
    assert config.code_length == 8
    assert config.capacity == 10
    assert config.backup_enabled is False
    assert config.backup_dir == "/tmp/snapshots"
    assert config.log_level == "DEBUG"


def test_from_env_clamps_and_falls_back(monkeypatch):
    monkeypatch.setenv("LINKPULSE_CODE_LENGTH", "2")
    monkeypatch.setenv("LINKPULSE_HISTORY_LIMIT", "not-a-number")
    monkeypatch.setenv("LINKPULSE_CODE_ALPHABET", "")
    config = ShortenerConfig.from_env()
    assert config.code_length == 4
    assert config.history_limit == 1000
    assert config.alphabet == DEFAULT_ALPHABET


def test_from_env_clamps_timer_intervals(monkeypatch):
    monkeypatch.setenv("LINKPULSE_SWEEP_INTERVAL", "0")
    monkeypatch.setenv("LINKPULSE_BACKUP_INTERVAL", "-5")
    config = ShortenerConfig.from_env()
    assert config.sweep_interval_seconds == 1
    assert config.backup_interval_seconds == 1
