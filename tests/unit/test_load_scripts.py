"""
Unit tests for the httpx load scripts, against an httpx.MockTransport.

Covers:
    - write_load resubmits earlier URLs with an upper-cased host and counts
      `existing_url` responses instead of logging them as new codes
    - read_load sends API-client headers and never follows redirects
"""

import asyncio
import io
import json

import httpx

import read_load
import write_load


def test_write_load_counts_deduplicated_resubmits():
    seen = []

    def handler(request):
        payload = json.loads(request.content)
        seen.append(payload["url"])
        return httpx.Response(200, json={
            "short_code": "abc123",
            "original_url": "https://example.com/x",
            "existing_url": True,
        })

    async def run():
        out = io.StringIO()
        stats = {"existing": 0}
        sent = [("example.com", "/x")]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            ok = await write_load._create_one(client, "http://test", out, 0, sent, 1.0, stats)
        return ok, out.getvalue(), stats

    ok, written, stats = asyncio.run(run())
    assert ok is True
    assert seen == ["https://EXAMPLE.COM/x"]
    assert stats["existing"] == 1
    assert written == ""


def test_write_load_records_new_codes():
    def handler(request):
        return httpx.Response(200, json={"short_code": "new001", "original_url": "https://a.io/p", "existing_url": False})

    async def run():
        out = io.StringIO()
        sent = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await write_load._create_one(client, "http://test", out, 7, sent, 0.0, {"existing": 0})
        return out.getvalue(), sent

    written, sent = asyncio.run(run())
    assert json.loads(written) == {"code": "new001", "url": "https://a.io/p"}
    assert len(sent) == 1


def test_read_load_hits_as_api_client():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["accept"] = request.headers["accept"]
        captured["agent"] = request.headers["user-agent"]
        return httpx.Response(302, headers={"location": "https://example.com/"})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await read_load._hit_one(client, "http://test", "abc123", "read-load/1")

    assert asyncio.run(run()) is True
    assert captured == {"path": "/s/abc123", "accept": "application/json", "agent": "read-load/1"}
