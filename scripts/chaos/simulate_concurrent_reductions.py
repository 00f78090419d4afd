#!/usr/bin/env python3
"""Chaos scenario: race many stock reductions against one inventory item.

The script creates a throwaway vendor and item on a running inventory service,
restocks the item, then fires a burst of concurrent reductions whose combined
quantity exceeds the balance. A healthy ledger accepts exactly as many as the
stock covers and rejects the rest with 409; any negative or mismatched balance
is reported as an oversell.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import time
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

import httpx
from prometheus_client.parser import text_string_to_metric_families

REJECTED_METRIC = "inventory_stock_transactions_rejected"
RETRY_METRIC = "inventory_ledger_conflict_retries"


@dataclass(slots=True)
class ReductionOutcome:
    status_code: int
    latency_ms: float
    detail: Any


class ChaosError(RuntimeError):
    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})


def _env_default(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fire concurrent stock reductions and check for oversell")
    parser.add_argument(
        "--base-url",
        default=_env_default("INVENTORY_BASE_URL", "http://127.0.0.1:8000"),
        help="Base URL for the inventory service (default: %(default)s or INVENTORY_BASE_URL)",
    )
    parser.add_argument(
        "--stock",
        type=int,
        default=int(_env_default("CONCURRENT_REDUCTION_STOCK", "5")),
        help="Units to restock before the burst (default: %(default)s or CONCURRENT_REDUCTION_STOCK)",
    )
    parser.add_argument(
        "--reductions",
        type=int,
        default=int(_env_default("CONCURRENT_REDUCTION_COUNT", "10")),
        help="Number of concurrent reduction requests (default: %(default)s or CONCURRENT_REDUCTION_COUNT)",
    )
    parser.add_argument(
        "--quantity",
        type=int,
        default=1,
        help="Units removed by each reduction (default: %(default)s)",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=10.0,
        help="HTTP client timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "--metrics-path",
        default=_env_default("INVENTORY_METRICS_PATH", "/metrics"),
        help="Prometheus endpoint used for rejection and retry counters (default: %(default)s)",
    )
    parser.add_argument(
        "--skip-metrics",
        action="store_true",
        help="Do not read Prometheus counters before and after the burst",
    )

    args = parser.parse_args()
    if args.stock < 0:
        parser.error("--stock must not be negative")
    if args.reductions <= 0:
        parser.error("--reductions must be positive")
    if args.quantity <= 0:
        parser.error("--quantity must be positive")
    return args


def _ensure(response: httpx.Response, expected: int, action: str) -> Dict[str, Any]:
    if response.status_code != expected:
        raise ChaosError(
            f"{action} failed",
            context={"status": response.status_code, "body": response.text[:500]},
        )
    return response.json()


async def read_counters(client: httpx.AsyncClient, path: str) -> Dict[str, float]:
    response = await client.get(path)
    if response.status_code != 200:
        raise ChaosError("metrics endpoint unavailable", context={"status": response.status_code, "path": path})
    counters: Dict[str, float] = {}
    for family in text_string_to_metric_families(response.text):
        if family.name not in (REJECTED_METRIC, RETRY_METRIC):
            continue
        for sample in family.samples:
            if not sample.name.endswith("_total"):
                continue
            key = sample.labels.get("reason", "retries") if family.name == REJECTED_METRIC else "retries"
            counters[key] = counters.get(key, 0.0) + sample.value
    return counters


async def seed_item(client: httpx.AsyncClient, stock: int) -> tuple[int, int]:
    tag = uuid.uuid4().hex[:8]
    vendor = _ensure(await client.post("/vendors", json={"name": f"chaos-vendor-{tag}"}), 201, "create vendor")
    item = _ensure(
        await client.post("/inventory", json={"name": f"chaos-item-{tag}", "category": "Chaos"}),
        201,
        "create item",
    )
    if stock:
        _ensure(
            await client.post(
                f"/inventory/{item['id']}/stock-transactions",
                json={
                    "transactionType": "Restock",
                    "quantity": stock,
                    "vendorId": vendor["id"],
                    "transactionDate": datetime.now(timezone.utc).isoformat(),
                    "notes": "chaos seed",
                },
            ),
            201,
            "seed restock",
        )
    return item["id"], vendor["id"]


async def reduce_once(client: httpx.AsyncClient, item_id: int, quantity: int) -> ReductionOutcome:
    start = time.perf_counter()
    response = await client.post(
        f"/inventory/{item_id}/stock-transactions",
        json={
            "transactionType": "Reduction",
            "quantity": quantity,
            "reductionReason": "Used",
            "transactionDate": datetime.now(timezone.utc).isoformat(),
            "notes": "chaos burst",
        },
    )
    latency = (time.perf_counter() - start) * 1000
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = response.text[:200]
    return ReductionOutcome(status_code=response.status_code, latency_ms=latency, detail=detail)


async def run(args: argparse.Namespace) -> Mapping[str, Any]:
    timeout = httpx.Timeout(args.request_timeout)
    async with httpx.AsyncClient(base_url=args.base_url, timeout=timeout) as client:
        before = {} if args.skip_metrics else await read_counters(client, args.metrics_path)
        item_id, vendor_id = await seed_item(client, args.stock)

        outcomes: List[ReductionOutcome] = await asyncio.gather(
            *(reduce_once(client, item_id, args.quantity) for _ in range(args.reductions))
        )

        item = _ensure(await client.get(f"/inventory/{item_id}"), 200, "read item")
        history = _ensure(await client.get(f"/inventory/{item_id}/stock-transactions"), 200, "read history")
        after = {} if args.skip_metrics else await read_counters(client, args.metrics_path)

    statuses = Counter(outcome.status_code for outcome in outcomes)
    accepted = statuses.get(201, 0)
    expected_accepted = min(args.reductions, args.stock // args.quantity)
    ledger_balance = sum(
        entry["quantity"] if entry["transactionType"] == "Restock" else -entry["quantity"] for entry in history
    )
    final_quantity = item["quantity"]
    oversold = final_quantity < 0 or accepted > expected_accepted or ledger_balance != final_quantity
    latencies = sorted(outcome.latency_ms for outcome in outcomes)

    return {
        "status": "oversell" if oversold else "ok",
        "inventoryId": item_id,
        "vendorId": vendor_id,
        "initialStock": args.stock,
        "reductions": args.reductions,
        "quantityPerReduction": args.quantity,
        "accepted": accepted,
        "expectedAccepted": expected_accepted,
        "statusCounts": {str(code): count for code, count in sorted(statuses.items())},
        "finalQuantity": final_quantity,
        "ledgerBalance": ledger_balance,
        "latencyMs": {
            "p50": round(latencies[len(latencies) // 2], 2),
            "max": round(latencies[-1], 2),
        },
        "rejectionDeltas": {
            key: round(after.get(key, 0.0) - before.get(key, 0.0), 3) for key in sorted(set(before) | set(after))
        },
        "sampleRejection": next((outcome.detail for outcome in outcomes if outcome.status_code == 409), None),
    }


def main() -> int:
    args = parse_args()
    try:
        result = asyncio.run(run(args))
    except ChaosError as exc:
        payload = {
            "status": "error",
            "message": str(exc),
            "context": exc.context,
        }
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 2
    except httpx.HTTPError as exc:
        payload = {
            "status": "error",
            "message": str(exc),
        }
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 3

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 1 if result["status"] == "oversell" else 0


if __name__ == "__main__":
    raise SystemExit(main())
