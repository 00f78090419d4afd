"""Vendor registry HTTP endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_vendor_repository
from ..models import Vendor
from ..repository import VendorRepository
from ..schemas import VendorCreate, VendorResponse, VendorUpdate
from ..services import VendorService

router = APIRouter(prefix="/vendors", tags=["vendors"])


async def _require_vendor(repository: VendorRepository, vendor_id: int) -> Vendor:
    vendor = await repository.get_vendor(vendor_id)
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    return vendor


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    payload: VendorCreate,
    repository: VendorRepository = Depends(get_vendor_repository),
) -> VendorResponse:
    vendor = await VendorService(repository).create_vendor(payload)
    return VendorResponse.model_validate(vendor)


@router.get("", response_model=list[VendorResponse])
async def list_vendors(
    active_only: bool = Query(default=False, alias="activeOnly"),
    repository: VendorRepository = Depends(get_vendor_repository),
) -> list[VendorResponse]:
    vendors = await repository.list_vendors(active_only=active_only)
    return [VendorResponse.model_validate(vendor) for vendor in vendors]


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: int,
    repository: VendorRepository = Depends(get_vendor_repository),
) -> VendorResponse:
    return VendorResponse.model_validate(await _require_vendor(repository, vendor_id))


@router.patch("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    repository: VendorRepository = Depends(get_vendor_repository),
) -> VendorResponse:
    vendor = await _require_vendor(repository, vendor_id)
    try:
        updated = await VendorService(repository).update_vendor(vendor, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VendorResponse.model_validate(updated)


@router.delete("/{vendor_id}", response_model=VendorResponse)
async def deactivate_vendor(
    vendor_id: int,
    repository: VendorRepository = Depends(get_vendor_repository),
) -> VendorResponse:
    vendor = await _require_vendor(repository, vendor_id)
    return VendorResponse.model_validate(await VendorService(repository).deactivate_vendor(vendor))
