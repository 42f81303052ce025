"""
read_load.py: async load script that hits short codes (recording clicks) on a running service

Usage:
  python read_load.py --base http://127.0.0.1:8000 --in links_created.jsonl --count 15000 --concurrency 200

A share of hits (--hot-ratio) goes to the first code only, so its bucket
builds up per-agent concentration. After the run the script prints that
code's analytics security block and the governor/backup view from
/api/memory-stats.
"""
import argparse
import asyncio
import json
import random
import time
from datetime import datetime, timezone

import httpx

def _now_iso():
    return datetime.now(timezone.utc).isoformat()

def _load_codes(path):
    codes = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            try:
                c = json.loads(line).get("code")
            except ValueError:
                continue
            if c:
                codes.append(c)
    return codes

async def _hit_one(client: httpx.AsyncClient, base: str, code: str, agent: str):
    try:
        r = await client.get(
            f"{base}/s/{code}",
            headers={"Accept": "application/json", "User-Agent": agent},
            follow_redirects=False,
            timeout=10,
        )
        return 200 <= r.status_code < 400
    except httpx.HTTPError:
        return False

async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--in", dest="codes_file", default="links_created.jsonl")
    parser.add_argument("--count", type=int, default=15000)
    parser.add_argument("--concurrency", type=int, default=200)
    parser.add_argument("--hot-ratio", type=float, default=0.3)
    args = parser.parse_args()

    codes = _load_codes(args.codes_file)
    if not codes:
        print(f"No codes found in {args.codes_file}. Run write_load.py first.")
        return

    agents = [f"read-load/{i}" for i in range(20)]
    hot = codes[0]
    start_iso = _now_iso()
    t0 = time.perf_counter()
    success = 0

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _task(i):
            nonlocal success
            async with sem:
                code = hot if random.random() < args.hot_ratio else random.choice(codes)
                if await _hit_one(client, args.base, code, random.choice(agents)):
                    success += 1

        await asyncio.gather(*(_task(i) for i in range(args.count)))
        dt = time.perf_counter() - t0
        analytics = (await client.get(f"{args.base}/api/analytics/{hot}", timeout=10)).json()
        memory = (await client.get(f"{args.base}/api/memory-stats", timeout=10)).json()

    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   reads={args.count}, ok={success}, fail={args.count - success}")
    security = analytics.get("security") or {}
    print(f"HOT:   {hot} clicks={analytics.get('total_clicks')} flags={security.get('flag_count')} risk={security.get('risk_level')}")
    print(f"MEM:   history_events={memory.get('history_events')} capacity_used_pct={memory.get('capacity_used_pct')} last_sweep_at={memory.get('last_sweep_at')}")
    if dt > 0:
        print(f"RPS:   {success/dt:.1f} req/s")

if __name__ == "__main__":
    asyncio.run(main())
