"""Inventory reporting HTTP endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_repository
from ..reports import build_inventory_report
from ..repository import InventoryRepository
from ..schemas import InventoryReport

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/inventory", response_model=InventoryReport)
async def inventory_report(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    repository: InventoryRepository = Depends(get_repository),
) -> InventoryReport:
    try:
        return await build_inventory_report(repository, start=start_date, end=end_date)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
