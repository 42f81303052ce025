"""
Integration tests for boot-time restore and shutdown backup.

Running the app as a context manager triggers the lifespan: restore from the
LATEST snapshot, start timers, and write a forced backup on shutdown.
"""

import json

from fastapi.testclient import TestClient

from main import create_app

API_HEADERS = {"Accept": "application/json"}


def test_state_survives_restart(config):
    with TestClient(create_app(config)) as client:
        code = client.post("/shorten", json={"url": "https://persist.example.com/"}).json()["short_code"]
        client.get(f"/s/{code}", headers=API_HEADERS)

    with TestClient(create_app(config)) as client:
        urls = client.get("/api/urls").json()
        assert [(u["short_code"], u["clicks"]) for u in urls] == [(code, 1)]
        again = client.post("/shorten", json={"url": "https://persist.example.com/"}).json()
        assert again["short_code"] == code
        assert again["existing_url"] is True


def test_corrupt_snapshot_does_not_block_startup(config, tmp_path):
    backups = tmp_path / "backups"
    backups.mkdir()
    (backups / "backup-20251009T000000000000Z.json").write_text("[1, 2")
    (backups / "LATEST").write_text("backup-20251009T000000000000Z.json")

    with TestClient(create_app(config)) as client:
        assert client.get("/health").json()["stats"]["total_urls"] == 0
        assert client.post("/shorten", json={"url": "https://fresh.example.com/"}).status_code == 200


def test_wrongly_shaped_snapshot_does_not_block_startup(config, tmp_path):
    backups = tmp_path / "backups"
    backups.mkdir()
    bucket = {"history": [], "daily_counts": {}, "hourly_counts": {}, "security": {"ip_counts": [1, 2]}}
    snapshot = {
        "version": "1.0",
        "url_database": [["abc123", {"short_code": "abc123", "original_url": "https://x.example.com/", "created_at": 0}]],
        "analytics": [["abc123", bucket]],
        "url_to_short_code": [["https://x.example.com/", "abc123"]],
    }
    (backups / "backup-20251009T000000000000Z.json").write_text(json.dumps(snapshot))
    (backups / "LATEST").write_text("backup-20251009T000000000000Z.json")

    with TestClient(create_app(config)) as client:
        assert client.get("/health").json()["stats"]["total_urls"] == 0
        assert client.get("/s/abc123", headers=API_HEADERS).status_code == 404
