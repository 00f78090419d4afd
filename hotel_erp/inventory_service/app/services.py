"""Inventory domain services."""

from __future__ import annotations

import logging

from .exceptions import DuplicateError
from .models import InventoryItem, Message, User, Vendor
from .repository import InventoryRepository, MessageRepository, UserRepository, VendorRepository
from .schemas import InventoryCreate, InventoryUpdate, UserCreate, VendorCreate, VendorUpdate

_LOGGER = logging.getLogger(__name__)


class InventoryService:
    """Descriptive item maintenance; balances are owned by :class:`~.ledger.StockLedger`."""

    def __init__(self, repository: InventoryRepository) -> None:
        self.repository = repository

    async def create_item(self, payload: InventoryCreate) -> InventoryItem:
        item = await self.repository.create_item(**payload.model_dump())
        _LOGGER.info("Created inventory item %s (%s)", item.id, item.name)
        return item

    async def update_item(self, item: InventoryItem, payload: InventoryUpdate) -> InventoryItem:
        changes = payload.model_dump(exclude_unset=True)
        for required in ("name", "category"):
            if required in changes and changes[required] is None:
                msg = f"{required} cannot be cleared"
                raise ValueError(msg)
        if not changes:
            return item
        return await self.repository.update_item(item, changes)

    async def delete_item(self, item: InventoryItem) -> None:
        await self.repository.delete_item(item)
        _LOGGER.info("Deleted inventory item %s and its stock history", item.id)


class VendorService:
    def __init__(self, repository: VendorRepository) -> None:
        self.repository = repository

    async def create_vendor(self, payload: VendorCreate) -> Vendor:
        return await self.repository.create_vendor(**payload.model_dump())

    async def update_vendor(self, vendor: Vendor, payload: VendorUpdate) -> Vendor:
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is None:
            msg = "name cannot be cleared"
            raise ValueError(msg)
        if not changes:
            return vendor
        return await self.repository.update_vendor(vendor, changes)

    async def deactivate_vendor(self, vendor: Vendor) -> Vendor:
        # Soft delete: stock transactions keep pointing at the vendor that supplied them.
        if not vendor.is_active:
            return vendor
        return await self.repository.update_vendor(vendor, {"is_active": False})


class UserService:
    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository

    async def create_user(self, payload: UserCreate) -> User:
        if await self.repository.find_by_username(payload.username) is not None:
            msg = f"username '{payload.username}' is already taken"
            raise DuplicateError(msg)
        data = payload.model_dump()
        data["role"] = payload.role.value
        return await self.repository.create_user(**data)


class MessageService:
    def __init__(self, repository: MessageRepository) -> None:
        self.repository = repository

    async def mark_read(self, message: Message) -> Message:
        if message.is_read:
            return message
        return await self.repository.mark_read(message)
