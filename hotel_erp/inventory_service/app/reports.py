"""Read-only inventory reporting built from item balances and the stock ledger."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone

from .models import InventoryItem, ReductionReason, TransactionType
from .repository import InventoryRepository
from .schemas import (
    CategoryStockSummary,
    InventoryReport,
    LowStockItemSummary,
    MovementSummary,
    ReportPeriod,
    as_utc,
)

DEFAULT_PERIOD = timedelta(days=30)
LOW_STOCK_LIMIT = 10


def _at_or_below_minimum(item: InventoryItem) -> bool:
    # Reporting flags items sitting on their threshold too, one step earlier than the ledger alert.
    return item.minimum_stock is not None and item.quantity <= item.minimum_stock


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def _fill_rate(item: InventoryItem) -> float:
    if not item.minimum_stock:
        return 0.0
    return round(item.quantity / item.minimum_stock * 100, 1)


def resolve_period(start: datetime | None, end: datetime | None, *, now: datetime | None = None) -> tuple[datetime, datetime]:
    end_date = as_utc(end) if end is not None else (now or datetime.now(timezone.utc))
    start_date = as_utc(start) if start is not None else end_date - DEFAULT_PERIOD
    if start_date > end_date:
        msg = "startDate must not be after endDate"
        raise ValueError(msg)
    return start_date, end_date


async def build_inventory_report(
    repository: InventoryRepository,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> InventoryReport:
    start_date, end_date = resolve_period(start, end)
    items = await repository.all_items()
    low_items = [item for item in items if _at_or_below_minimum(item)]

    grouped: dict[str, list[InventoryItem]] = defaultdict(list)
    for item in items:
        grouped[item.category].append(item)
    by_category = [
        CategoryStockSummary(
            category=category,
            item_count=len(members),
            low_stock_count=sum(1 for member in members if _at_or_below_minimum(member)),
            total_quantity=sum(member.quantity for member in members),
            stock_health=_percentage(
                len(members) - sum(1 for member in members if _at_or_below_minimum(member)),
                len(members),
            ),
        )
        for category, members in sorted(grouped.items())
    ]

    lowest = sorted(low_items, key=lambda item: (_fill_rate(item), item.name))[:LOW_STOCK_LIMIT]
    low_stock_items = [
        LowStockItemSummary(
            inventory_id=item.id,
            name=item.name,
            category=item.category,
            quantity=item.quantity,
            minimum_stock=item.minimum_stock or 0,
            fill_rate=_fill_rate(item),
        )
        for item in lowest
    ]

    restocked = 0
    reduced = 0
    count = 0
    by_reason: dict[ReductionReason, int] = {}
    for transaction_type, reason, quantity, rows in await repository.movement_totals(start=start_date, end=end_date):
        count += rows
        if transaction_type == TransactionType.RESTOCK:
            restocked += quantity
        else:
            reduced += quantity
            if reason is not None:
                key = ReductionReason(reason)
                by_reason[key] = by_reason.get(key, 0) + quantity

    return InventoryReport(
        report_period=ReportPeriod(start_date=start_date, end_date=end_date),
        total_items=len(items),
        low_stock_count=len(low_items),
        overall_stock_health=_percentage(len(items) - len(low_items), len(items)),
        by_category=by_category,
        low_stock_items=low_stock_items,
        movements=MovementSummary(
            restocked_quantity=restocked,
            reduced_quantity=reduced,
            reductions_by_reason=by_reason,
            transaction_count=count,
        ),
    )
