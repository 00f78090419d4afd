"""Stock ledger HTTP endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..exceptions import (
    ConcurrencyConflict,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    StockValidationError,
)
from ..dependencies import get_stock_ledger
from ..ledger import StockLedger
from ..schemas import StockTransactionRequest, StockTransactionResponse

router = APIRouter(prefix="/inventory", tags=["stock-transactions"])


def _to_http_error(exc: LedgerError) -> HTTPException:
    detail: Any = str(exc)
    if isinstance(exc, StockValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InsufficientStockError):
        code = status.HTTP_409_CONFLICT
        detail = {
            "message": str(exc),
            "currentQuantity": exc.current_quantity,
            "requestedQuantity": exc.requested_quantity,
        }
    elif isinstance(exc, ConcurrencyConflict):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=detail)


@router.post(
    "/{item_id}/stock-transactions",
    response_model=StockTransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_stock_transaction(
    item_id: int,
    payload: Annotated[StockTransactionRequest, Body(discriminator="transaction_type")],
    ledger: StockLedger = Depends(get_stock_ledger),
) -> StockTransactionResponse:
    try:
        return await ledger.record_transaction(item_id, payload)
    except LedgerError as exc:
        raise _to_http_error(exc) from exc


@router.get("/{item_id}/stock-transactions", response_model=list[StockTransactionResponse])
async def list_stock_transactions(
    item_id: int,
    ledger: StockLedger = Depends(get_stock_ledger),
) -> list[StockTransactionResponse]:
    try:
        return await ledger.list_transactions(item_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
