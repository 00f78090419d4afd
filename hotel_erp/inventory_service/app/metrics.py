"""Prometheus metrics for the inventory service."""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter

_REJECTION_REASONS: Final = (
    "validation",
    "not_found",
    "insufficient_stock",
    "concurrency_conflict",
)

# Ledger ------------------------------------------------------------------------------------
STOCK_TRANSACTIONS_TOTAL: Final = Counter(
    "inventory_stock_transactions_total",
    "Stock transactions committed to the ledger.",
    labelnames=("transaction_type",),
)

STOCK_TRANSACTION_QUANTITY_TOTAL: Final = Counter(
    "inventory_stock_transaction_quantity_total",
    "Units moved by committed stock transactions.",
    labelnames=("transaction_type",),
)

STOCK_TRANSACTIONS_REJECTED_TOTAL: Final = Counter(
    "inventory_stock_transactions_rejected_total",
    "Stock transactions rejected before any write.",
    labelnames=("reason",),
)

LEDGER_CONFLICT_RETRIES_TOTAL: Final = Counter(
    "inventory_ledger_conflict_retries_total",
    "Ledger units of work retried after a concurrent balance update.",
)

# Low-stock alerts --------------------------------------------------------------------------
LOW_STOCK_EVENTS_TOTAL: Final = Counter(
    "inventory_low_stock_events_total",
    "Low-stock events raised after a committed transaction.",
)

LOW_STOCK_NOTIFY_FAILURES_TOTAL: Final = Counter(
    "inventory_low_stock_notify_failures_total",
    "Low-stock events that could not be handed to the notifier.",
)

LOW_STOCK_ALERT_MESSAGES_TOTAL: Final = Counter(
    "inventory_low_stock_alert_messages_total",
    "Alert messages written to staff inboxes for low-stock events.",
)


def normalise_rejection_reason(raw_reason: str) -> str:
    """Return a bounded label value for the rejection counter."""

    reason = (raw_reason or "validation").strip().lower()
    if reason not in _REJECTION_REASONS:
        return "validation"
    return reason
