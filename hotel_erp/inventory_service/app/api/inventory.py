"""Inventory item HTTP endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..dependencies import get_repository
from ..models import InventoryItem
from ..repository import InventoryRepository
from ..schemas import InventoryCreate, InventoryListResponse, InventoryResponse, InventoryUpdate
from ..services import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _serialize_item(item: InventoryItem) -> dict[str, object]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "category": item.category,
        "location": item.location,
        "quantity": item.quantity,
        "minimumStock": item.minimum_stock,
        "unitCost": item.unit_cost,
        "lastRestockedDate": item.last_restocked_date,
        "notes": item.notes,
        "isLowStock": item.is_low_stock,
        "createdAt": item.created_at,
        "updatedAt": item.updated_at,
    }


async def _require_item(repository: InventoryRepository, item_id: int) -> InventoryItem:
    item = await repository.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return item


@router.post("", response_model=InventoryResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryCreate,
    repository: InventoryRepository = Depends(get_repository),
) -> InventoryResponse:
    item = await InventoryService(repository).create_item(payload)
    return InventoryResponse.model_validate(_serialize_item(item))


@router.get("", response_model=InventoryListResponse)
async def list_inventory_items(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    category: str | None = None,
    location: str | None = None,
    low_stock: bool | None = Query(default=None, alias="lowStock"),
    repository: InventoryRepository = Depends(get_repository),
) -> InventoryListResponse:
    items, total = await repository.list_items(
        category=category,
        location=location,
        low_stock=low_stock,
        limit=limit,
        offset=offset,
    )
    responses = [InventoryResponse.model_validate(_serialize_item(item)) for item in items]
    return InventoryListResponse(items=responses, total=total)


@router.get("/{item_id}", response_model=InventoryResponse)
async def get_inventory_item(item_id: int, repository: InventoryRepository = Depends(get_repository)) -> InventoryResponse:
    item = await _require_item(repository, item_id)
    return InventoryResponse.model_validate(_serialize_item(item))


@router.patch("/{item_id}", response_model=InventoryResponse)
async def update_inventory_item(
    item_id: int,
    payload: InventoryUpdate,
    repository: InventoryRepository = Depends(get_repository),
) -> InventoryResponse:
    item = await _require_item(repository, item_id)
    try:
        updated = await InventoryService(repository).update_item(item, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return InventoryResponse.model_validate(_serialize_item(updated))


@router.delete("/{item_id}")
async def delete_inventory_item(
    item_id: int,
    repository: InventoryRepository = Depends(get_repository),
) -> Response:
    item = await repository.get_item(item_id)
    if item is not None:
        await InventoryService(repository).delete_item(item)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
