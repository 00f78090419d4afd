"""Pydantic schemas for the inventory service."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    field_validator,
)

from .models import MAX_QUANTITY, MessageType, ReductionReason, TransactionType, UserRole


def _strip_required(value: str, field_name: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        msg = f"{field_name} must be non-empty"
        raise ValueError(msg)
    return cleaned


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Inventory items ---------------------------------------------------------------------------


class InventoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    category: str = Field(min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=200)
    minimum_stock: NonNegativeInt | None = Field(default=None, alias="minimumStock")
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2, alias="unitCost")
    notes: str | None = None

    # No quantity field: balances only move through stock transactions.
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _strip_required(value, "name")

    @field_validator("category")
    @classmethod
    def _strip_category(cls, value: str) -> str:
        return _strip_required(value, "category")

    @field_validator("location", "description", "notes")
    @classmethod
    def _strip_text(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class InventoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(default=None, min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=200)
    minimum_stock: NonNegativeInt | None = Field(default=None, alias="minimumStock")
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2, alias="unitCost")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("name", "category")
    @classmethod
    def _strip_required_when_given(cls, value: str | None, info) -> str | None:
        if value is None:
            return None
        return _strip_required(value, info.field_name)


class InventoryResponse(BaseModel):
    id: PositiveInt
    name: str
    description: str | None
    category: str
    location: str | None
    quantity: int
    minimum_stock: int | None = Field(alias="minimumStock")
    unit_cost: Decimal | None = Field(alias="unitCost")
    last_restocked_date: datetime | None = Field(alias="lastRestockedDate")
    notes: str | None
    is_low_stock: bool = Field(alias="isLowStock")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class InventoryListResponse(BaseModel):
    items: list[InventoryResponse]
    total: int


# Stock transactions ------------------------------------------------------------------------


class _StockTransactionBase(BaseModel):
    quantity: PositiveInt = Field(le=MAX_QUANTITY)
    transaction_date: datetime = Field(alias="transactionDate")
    unit_cost: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2, alias="unitCost")
    notes: str | None = Field(default=None, max_length=1000)
    created_by_user_id: PositiveInt | None = Field(default=None, alias="createdByUserId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("transaction_date")
    @classmethod
    def _normalise_date(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class RestockRequest(_StockTransactionBase):
    transaction_type: Literal["Restock"] = Field(alias="transactionType")
    vendor_id: PositiveInt = Field(alias="vendorId")


class ReductionRequest(_StockTransactionBase):
    transaction_type: Literal["Reduction"] = Field(alias="transactionType")
    reduction_reason: ReductionReason = Field(alias="reductionReason")
    vendor_id: PositiveInt | None = Field(default=None, alias="vendorId")


# Tagged by "transactionType"; routes bind it with Body(discriminator="transaction_type").
StockTransactionRequest = Union[RestockRequest, ReductionRequest]


class StockTransactionResponse(BaseModel):
    """Read model: the stored transaction plus display names resolved at query time."""

    id: PositiveInt
    inventory_id: int = Field(alias="inventoryId")
    inventory_name: str = Field(alias="inventoryName")
    transaction_type: TransactionType = Field(alias="transactionType")
    quantity: int
    vendor_id: int | None = Field(alias="vendorId")
    vendor_name: str | None = Field(alias="vendorName")
    transaction_date: datetime = Field(alias="transactionDate")
    reduction_reason: ReductionReason | None = Field(alias="reductionReason")
    notes: str | None
    unit_cost: Decimal | None = Field(alias="unitCost")
    created_by_user_id: int | None = Field(alias="createdByUserId")
    created_by_user_name: str | None = Field(alias="createdByUserName")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# Vendors -----------------------------------------------------------------------------------


class VendorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone_number: str = Field(default="", max_length=32, alias="phoneNumber")
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    contact_person: str | None = Field(default=None, max_length=200, alias="contactPerson")
    services: str | None = Field(default=None, max_length=500)
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _strip_required(value, "name")


class VendorUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone_number: str | None = Field(default=None, max_length=32, alias="phoneNumber")
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    contact_person: str | None = Field(default=None, max_length=200, alias="contactPerson")
    services: str | None = Field(default=None, max_length=500)
    notes: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class VendorResponse(BaseModel):
    id: PositiveInt
    name: str
    phone_number: str = Field(alias="phoneNumber")
    email: str | None
    address: str | None
    contact_person: str | None = Field(alias="contactPerson")
    services: str | None
    notes: str | None
    is_active: bool = Field(alias="isActive")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# Users -------------------------------------------------------------------------------------


class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(min_length=1, max_length=100, alias="lastName")
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    username: str = Field(min_length=3, max_length=100)
    role: UserRole = UserRole.WORKER

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("username")
    @classmethod
    def _normalise_username(cls, value: str) -> str:
        return _strip_required(value, "username").lower()


class UserResponse(BaseModel):
    id: PositiveInt
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    display_name: str = Field(alias="displayName")
    email: str
    username: str
    role: UserRole
    is_active: bool = Field(alias="isActive")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# Messages ----------------------------------------------------------------------------------


class MessageResponse(BaseModel):
    id: PositiveInt
    subject: str
    content: str
    message_type: MessageType = Field(alias="messageType")
    sender_id: int | None = Field(alias="senderId")
    receiver_id: int = Field(alias="receiverId")
    is_read: bool = Field(alias="isRead")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# Reports -----------------------------------------------------------------------------------


class ReportPeriod(BaseModel):
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")

    model_config = ConfigDict(populate_by_name=True)


class CategoryStockSummary(BaseModel):
    category: str
    item_count: int = Field(alias="itemCount")
    low_stock_count: int = Field(alias="lowStockCount")
    total_quantity: int = Field(alias="totalQuantity")
    stock_health: float = Field(alias="stockHealth")

    model_config = ConfigDict(populate_by_name=True)


class LowStockItemSummary(BaseModel):
    inventory_id: int = Field(alias="inventoryId")
    name: str
    category: str
    quantity: int
    minimum_stock: int = Field(alias="minimumStock")
    fill_rate: float = Field(alias="fillRate")

    model_config = ConfigDict(populate_by_name=True)


class MovementSummary(BaseModel):
    restocked_quantity: int = Field(alias="restockedQuantity")
    reduced_quantity: int = Field(alias="reducedQuantity")
    reductions_by_reason: dict[ReductionReason, int] = Field(alias="reductionsByReason")
    transaction_count: int = Field(alias="transactionCount")

    model_config = ConfigDict(populate_by_name=True)


class InventoryReport(BaseModel):
    report_period: ReportPeriod = Field(alias="reportPeriod")
    total_items: int = Field(alias="totalItems")
    low_stock_count: int = Field(alias="lowStockCount")
    overall_stock_health: float = Field(alias="overallStockHealth")
    by_category: list[CategoryStockSummary] = Field(alias="byCategory")
    low_stock_items: list[LowStockItemSummary] = Field(alias="lowStockItems")
    movements: MovementSummary

    model_config = ConfigDict(populate_by_name=True)
