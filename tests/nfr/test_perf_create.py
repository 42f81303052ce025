"""
NFR: creation and click-recording throughput

How to run (opt-in):
    RUN_NFR=1 pytest tests/nfr/test_perf_create.py -vv
Optional thresholds:
    NFR_TARGET_CREATE_QPS=1000     # assert create QPS >= 1000 (example)
    NFR_TARGET_CREATE_P95_MS=5     # assert p95 latency per create <= 5 ms

Notes:
    - Fresh in-memory components for deterministic measurements.
    - Does not assert unless env vars are set.
"""

import os
import statistics
import time

import pytest

from linkpulse.config import ShortenerConfig
from linkpulse.manager.link_manager import LinkManager
from linkpulse.models import EnrichedAccessInfo
from linkpulse.storage.storage import Storage

pytestmark = pytest.mark.nfr


def _should_run():
    return os.getenv("RUN_NFR") == "1"


@pytest.mark.skipif(not _should_run(), reason="NFR tests are opt-in; set RUN_NFR=1 to enable")
def test_create_throughput_and_latency(capsys):
    manager = LinkManager(storage=Storage(), config=ShortenerConfig())

    n = 2000
    latencies_ms = []
    t0 = time.perf_counter()
    for i in range(n):
        s = time.perf_counter()
        result = manager.create_short_url(f"https://example.com/resource/{i}")
        latencies_ms.append((time.perf_counter() - s) * 1000.0)
        assert result.short_code
    total_s = time.perf_counter() - t0

    qps = n / total_s
    p95 = statistics.quantiles(latencies_ms, n=100)[94]

    qps_target = os.getenv("NFR_TARGET_CREATE_QPS")
    p95_target_ms = os.getenv("NFR_TARGET_CREATE_P95_MS")
    if qps_target:
        assert qps >= float(qps_target), f"Create QPS {qps:.1f} < target {qps_target}"
    if p95_target_ms:
        assert p95 <= float(p95_target_ms), f"Create p95 {p95:.2f}ms > target {p95_target_ms}ms"

    with capsys.disabled():
        print(f"\nCreate N={n} -> total {total_s:.3f}s, QPS={qps:.1f}, p95={p95:.2f}ms", flush=True)


@pytest.mark.skipif(not _should_run(), reason="NFR tests are opt-in; set RUN_NFR=1 to enable")
def test_click_throughput_with_full_history(capsys):
    manager = LinkManager(storage=Storage(), config=ShortenerConfig(history_limit=1000))
    code = manager.create_short_url("https://example.com/hot").short_code
    info = EnrichedAccessInfo("10.0.0.1", "nfr")

    n = 20000
    t0 = time.perf_counter()
    for _ in range(n):
        manager.record_click(code, info)
    total_s = time.perf_counter() - t0

    assert len(manager.get_analytics(code)["history"]) == 1000
    with capsys.disabled():
        print(f"\nClicks N={n} -> total {total_s:.3f}s, RPS={n / total_s:.1f}", flush=True)
