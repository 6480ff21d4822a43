#!/usr/bin/env python3
"""Benchmark permission checks: latency (p50, p95, p99) and QPS.

The first request for each action misses the decision cache; the rest hit it,
so the numbers mostly describe the cached path. Use --actions to spread the
load over more keys.

Usage:
  With Keycloak:
    export API_URL=http://localhost:8000 KEYCLOAK_URL=http://localhost:8080 \\
      BENCH_USER=owner BENCH_PASSWORD=secret
    uv run python scripts/bench_check.py [--num-requests 1000]

  Against a development server without Keycloak:
    uv run python scripts/bench_check.py --user-id <user uuid>
"""
from __future__ import annotations

import argparse
import os
import statistics
import sys
import time

import httpx

DEFAULT_ACTIONS = ("patient.read", "patient.create", "adr.create", "team.manage", "reports.basic")


def get_token(
    keycloak_url: str,
    realm: str,
    client_id: str,
    client_secret: str,
    username: str,
    password: str,
) -> str:
    url = f"{keycloak_url.rstrip('/')}/realms/{realm}/protocol/openid-connect/token"
    r = httpx.post(
        url,
        data={
            "grant_type": "password",
            "client_id": client_id,
            "client_secret": client_secret,
            "username": username,
            "password": password,
        },
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        timeout=30.0,
    )
    r.raise_for_status()
    return r.json()["access_token"]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark permission checks")
    parser.add_argument("--num-requests", type=int, default=500, help="Number of check requests")
    parser.add_argument(
        "--actions",
        type=str,
        default=",".join(DEFAULT_ACTIONS),
        help="Comma-separated actions to cycle through",
    )
    parser.add_argument("--explain", action="store_true", help="Request explained decisions")
    parser.add_argument("--user-id", type=str, default="", help="Send X-User-Id instead of a token")
    parser.add_argument("--output", type=str, default="/results/bench_check.txt", help="Output file path")
    args = parser.parse_args()

    api_url = os.environ.get("API_URL", "http://localhost:8000").rstrip("/")
    actions = [a.strip() for a in args.actions.split(",") if a.strip()]
    if not actions:
        print("No actions given.")
        return 1

    headers = {"Content-Type": "application/json"}
    if args.user_id:
        headers["X-User-Id"] = args.user_id
    else:
        print("Getting token...")
        token = get_token(
            os.environ.get("KEYCLOAK_URL", "http://localhost:8080"),
            os.environ.get("KEYCLOAK_REALM", "pharmaguard"),
            os.environ.get("KEYCLOAK_CLIENT_ID", "pharmaguard-api"),
            os.environ.get("KEYCLOAK_CLIENT_SECRET", "pharmaguard-api-secret"),
            os.environ.get("BENCH_USER", "testuser"),
            os.environ.get("BENCH_PASSWORD", "testpass"),
        )
        headers["Authorization"] = f"Bearer {token}"

    latencies: list[float] = []
    allowed = 0
    errors = 0
    print(f"Running {args.num_requests} permission checks over {len(actions)} actions...")
    start_total = time.perf_counter()
    with httpx.Client(timeout=30.0) as client:
        for i in range(args.num_requests):
            t0 = time.perf_counter()
            r = client.post(
                f"{api_url}/v1/permissions/check",
                json={"action": actions[i % len(actions)], "explain": args.explain},
                headers=headers,
            )
            elapsed = time.perf_counter() - t0
            if r.status_code == 200:
                latencies.append(elapsed)
                if r.json().get("allowed"):
                    allowed += 1
            else:
                errors += 1
    total_elapsed = time.perf_counter() - start_total

    n = len(latencies)
    if n == 0:
        print("No successful checks.")
        return 1

    qps = n / total_elapsed
    p50 = statistics.median(latencies) * 1000
    p95 = sorted(latencies)[int(n * 0.95) - 1] * 1000 if n >= 20 else p50
    p99 = sorted(latencies)[int(n * 0.99) - 1] * 1000 if n >= 100 else p95

    summary = (
        f"Permission check benchmark (actions={len(actions)}, requests={n}, "
        f"allowed={allowed}, errors={errors})\n"
        f"  QPS: {qps:.2f}\n"
        f"  Latency: p50={p50:.1f} ms, p95={p95:.1f} ms, p99={p99:.1f} ms\n"
        f"  Total time: {total_elapsed:.2f} s\n"
    )
    print(summary)

    try:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(summary)
        print(f"Wrote {args.output}")
    except OSError:
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
