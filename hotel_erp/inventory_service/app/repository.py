"""Data access helpers for the inventory service."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import Select, and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import InventoryItem, Message, StockTransaction, User, Vendor


class InventoryRepository:
    """Persistence for inventory items and their append-only stock transactions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_item(self, **fields: Any) -> InventoryItem:
        item = InventoryItem(quantity=0, **fields)
        self.session.add(item)
        await self.session.flush()
        await self.session.refresh(item, attribute_names=["created_at", "updated_at"])
        return item

    async def get_item(self, item_id: int, *, for_update: bool = False) -> InventoryItem | None:
        stmt = select(InventoryItem).where(InventoryItem.id == item_id)
        if for_update:
            # Row lock where supported (PostgreSQL); SQLite relies on the version column instead.
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_items(
        self,
        *,
        category: str | None,
        location: str | None,
        low_stock: bool | None,
        limit: int,
        offset: int,
    ) -> tuple[list[InventoryItem], int]:
        filters = []
        if category is not None:
            filters.append(InventoryItem.category == category)
        if location is not None:
            filters.append(InventoryItem.location == location)
        if low_stock is True:
            filters.append(
                and_(InventoryItem.minimum_stock.is_not(None), InventoryItem.quantity < InventoryItem.minimum_stock)
            )
        elif low_stock is False:
            filters.append(
                (InventoryItem.minimum_stock.is_(None)) | (InventoryItem.quantity >= InventoryItem.minimum_stock)
            )

        base: Select[tuple[InventoryItem]] = select(InventoryItem).order_by(
            InventoryItem.name.asc(), InventoryItem.id.asc()
        )
        count: Select[tuple[int]] = select(func.count(InventoryItem.id))

        if filters:
            clause = and_(*filters)
            base = base.where(clause)
            count = count.where(clause)

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(base.offset(offset).limit(limit))
        return list(result.scalars()), total

    async def all_items(self) -> list[InventoryItem]:
        result = await self.session.execute(select(InventoryItem).order_by(InventoryItem.id))
        return list(result.scalars())

    async def update_item(self, item: InventoryItem, changes: dict[str, Any]) -> InventoryItem:
        for field, value in changes.items():
            setattr(item, field, value)
        await self.session.flush()
        await self.session.refresh(item, attribute_names=["updated_at"])
        return item

    async def delete_item(self, item: InventoryItem) -> None:
        # The item's stock history goes with it.
        await self.session.execute(delete(StockTransaction).where(StockTransaction.inventory_id == item.id))
        await self.session.delete(item)
        await self.session.flush()

    async def append_transaction(
        self,
        item: InventoryItem,
        *,
        transaction_type: str,
        quantity: int,
        transaction_date: datetime,
        vendor: Vendor | None,
        reduction_reason: str | None,
        unit_cost: Decimal | None,
        notes: str | None,
        created_by: User | None,
    ) -> StockTransaction:
        transaction = StockTransaction(
            item=item,
            transaction_type=transaction_type,
            quantity=quantity,
            transaction_date=transaction_date,
            vendor=vendor,
            reduction_reason=reduction_reason,
            unit_cost=unit_cost,
            notes=notes,
            created_by=created_by,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def list_transactions(self, inventory_id: int) -> list[StockTransaction]:
        result = await self.session.execute(
            select(StockTransaction)
            .where(StockTransaction.inventory_id == inventory_id)
            .order_by(
                StockTransaction.transaction_date.desc(),
                StockTransaction.created_at.desc(),
                StockTransaction.id.desc(),
            )
        )
        return list(result.scalars())

    async def movement_totals(
        self, *, start: datetime, end: datetime
    ) -> Sequence[tuple[str, str | None, int, int]]:
        """Return ``(type, reason, total_quantity, count)`` rows for transactions dated in ``[start, end]``."""

        result = await self.session.execute(
            select(
                StockTransaction.transaction_type,
                StockTransaction.reduction_reason,
                func.coalesce(func.sum(StockTransaction.quantity), 0),
                func.count(StockTransaction.id),
            )
            .where(StockTransaction.transaction_date >= start, StockTransaction.transaction_date <= end)
            .group_by(StockTransaction.transaction_type, StockTransaction.reduction_reason)
        )
        return [tuple(row) for row in result.all()]  # type: ignore[misc]


class VendorRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_vendor(self, **fields: Any) -> Vendor:
        vendor = Vendor(**fields)
        self.session.add(vendor)
        await self.session.flush()
        await self.session.refresh(vendor, attribute_names=["created_at", "updated_at"])
        return vendor

    async def get_vendor(self, vendor_id: int) -> Vendor | None:
        return await self.session.get(Vendor, vendor_id)

    async def list_vendors(self, *, active_only: bool) -> list[Vendor]:
        stmt = select(Vendor).order_by(Vendor.name.asc(), Vendor.id.asc())
        if active_only:
            stmt = stmt.where(Vendor.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def update_vendor(self, vendor: Vendor, changes: dict[str, Any]) -> Vendor:
        for field, value in changes.items():
            setattr(vendor, field, value)
        await self.session.flush()
        await self.session.refresh(vendor, attribute_names=["updated_at"])
        return vendor


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_user(self, **fields: Any) -> User:
        user = User(**fields)
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user, attribute_names=["created_at", "updated_at"])
        return user

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def find_by_username(self, username: str) -> User | None:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_users(self, *, role: str | None = None, active_only: bool = False) -> list[User]:
        stmt = select(User).order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc())
        if role is not None:
            stmt = stmt.where(User.role == role)
        if active_only:
            stmt = stmt.where(User.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def list_active_by_roles(self, roles: Sequence[str]) -> list[User]:
        result = await self.session.execute(
            select(User).where(User.role.in_(list(roles)), User.is_active.is_(True)).order_by(User.id)
        )
        return list(result.scalars())


class MessageRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_message(
        self,
        *,
        subject: str,
        content: str,
        message_type: str,
        receiver_id: int,
        sender_id: int | None = None,
    ) -> Message:
        message = Message(
            subject=subject,
            content=content,
            message_type=message_type,
            receiver_id=receiver_id,
            sender_id=sender_id,
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def get_message(self, message_id: int) -> Message | None:
        return await self.session.get(Message, message_id)

    async def list_for_receiver(self, receiver_id: int, *, unread_only: bool) -> list[Message]:
        stmt = (
            select(Message)
            .where(Message.receiver_id == receiver_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
        )
        if unread_only:
            stmt = stmt.where(Message.is_read.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def mark_read(self, message: Message) -> Message:
        message.is_read = True
        await self.session.flush()
        return message
