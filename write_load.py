"""
write_load.py — async create-link load against a running server

Every request is a POST /api/links. A share of them ask for a custom hash, hidden
visibility or an expiry, so alias checks and validation run under load too.
Created hashes go to a JSONL file that read_load.py replays.

Usage:
  python write_load.py --base http://127.0.0.1:8000 --count 2000 --concurrency 100 \
      --custom-every 10 --expire-every 7 --out links_created.jsonl
"""
import argparse
import asyncio
import json
import secrets
import statistics
import time
from collections import Counter
from datetime import datetime, timezone

import httpx


def build_payload(idx: int, run_tag: str, custom_every: int, expire_every: int, hidden_every: int) -> dict:
    payload = {
        "url": f"https://load.example.com/{run_tag}/{idx}",
        "title": f"load {run_tag} #{idx}",
    }
    if custom_every and idx % custom_every == 0:
        payload["custom_hash"] = f"{run_tag}-{idx}"
    if expire_every and idx % expire_every == 0:
        payload["expires_in"] = 3600
    if hidden_every and idx % hidden_every == 0:
        payload["visible"] = False
    return payload


async def create_one(client: httpx.AsyncClient, payload: dict):
    """Return (status label, latency ms, response body or None)."""
    t0 = time.perf_counter()
    try:
        r = await client.post("/api/links", json=payload)
    except httpx.HTTPError as exc:
        return type(exc).__name__, (time.perf_counter() - t0) * 1000.0, None
    elapsed = (time.perf_counter() - t0) * 1000.0
    return str(r.status_code), elapsed, r.json() if r.status_code == 201 else None


async def run(args) -> None:
    run_tag = secrets.token_hex(3)
    statuses = Counter()
    latencies_ms = []
    sem = asyncio.Semaphore(args.concurrency)
    limits = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)

    started = datetime.now(timezone.utc)
    t0 = time.perf_counter()
    with open(args.out, "w", encoding="utf-8") as out_f:
        async with httpx.AsyncClient(base_url=args.base, limits=limits, timeout=10) as client:

            async def task(i: int):
                payload = build_payload(i, run_tag, args.custom_every, args.expire_every, args.hidden_every)
                async with sem:
                    status, elapsed, body = await create_one(client, payload)
                statuses[status] += 1
                latencies_ms.append(elapsed)
                if body is not None:
                    out_f.write(json.dumps({"id": body["id"], "hash": body["hash"], "url": payload["url"]}) + "\n")

            await asyncio.gather(*(task(i) for i in range(1, args.count + 1)))
    total_s = time.perf_counter() - t0

    created = statuses.get("201", 0)
    print(f"RUN:     {run_tag} started {started.isoformat()}")
    print(f"TOTAL:   {total_s:.3f} s for {args.count} requests")
    print("STATUS:  " + ", ".join(f"{k}={v}" for k, v in sorted(statuses.items())))
    if len(latencies_ms) >= 100:
        p95 = statistics.quantiles(latencies_ms, n=100)[94]
        print(f"LATENCY: median={statistics.median(latencies_ms):.2f}ms p95={p95:.2f}ms")
    if total_s > 0:
        print(f"TPS:     {created / total_s:.1f} created/s")


def main():
    parser = argparse.ArgumentParser(description="Create-link load generator")
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--custom-every", type=int, default=0, help="every Nth request asks for a custom hash (0 = never)")
    parser.add_argument("--expire-every", type=int, default=0, help="every Nth request sets expires_in=3600 (0 = never)")
    parser.add_argument("--hidden-every", type=int, default=5, help="every Nth link is hidden (0 = never)")
    parser.add_argument("--out", default="links_created.jsonl")
    asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    main()
