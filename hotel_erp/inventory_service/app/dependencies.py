"""Dependency helpers for the inventory service."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hotel_erp.common import lifespan_session

from .ledger import StockLedger
from .repository import InventoryRepository, MessageRepository, UserRepository, VendorRepository


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an AsyncSession for the current request lifecycle."""

    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with lifespan_session(session_factory) as session:
        yield session


def get_repository(session: AsyncSession = Depends(get_session)) -> InventoryRepository:
    return InventoryRepository(session)


def get_vendor_repository(session: AsyncSession = Depends(get_session)) -> VendorRepository:
    return VendorRepository(session)


def get_user_repository(session: AsyncSession = Depends(get_session)) -> UserRepository:
    return UserRepository(session)


def get_message_repository(session: AsyncSession = Depends(get_session)) -> MessageRepository:
    return MessageRepository(session)


def get_stock_ledger(request: Request) -> StockLedger:
    ledger: StockLedger | None = getattr(request.app.state, "stock_ledger", None)
    if ledger is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Stock ledger unavailable")
    return ledger
