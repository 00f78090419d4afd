"""Stock ledger: the only code path that moves an inventory item's on-hand quantity.

Each call to :meth:`StockLedger.record_transaction` runs as one unit of work:
load the item, check referenced vendor and user, compute the new balance, then
append the transaction and write the balance in a single database transaction.
Every check happens before the first write, so a rejected request leaves
neither a log entry nor a balance change behind.

Writers on the same item are serialized twice. Inside the process, a keyed
``asyncio.Lock`` orders them. Between processes, the item's ``version`` column
turns a lost update into a ``StaleDataError``, and the whole unit of work is
then retried a bounded number of times.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hotel_erp.common import lifespan_session

from .events import LowStockEvent, LowStockNotifier
from .exceptions import (
    ConcurrencyConflict,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    StockValidationError,
)
from .metrics import (
    LEDGER_CONFLICT_RETRIES_TOTAL,
    LOW_STOCK_EVENTS_TOTAL,
    LOW_STOCK_NOTIFY_FAILURES_TOTAL,
    STOCK_TRANSACTION_QUANTITY_TOTAL,
    STOCK_TRANSACTIONS_REJECTED_TOTAL,
    STOCK_TRANSACTIONS_TOTAL,
    normalise_rejection_reason,
)
from .models import MAX_QUANTITY, ReductionReason, StockTransaction, TransactionType, User, Vendor
from .repository import InventoryRepository, UserRepository, VendorRepository
from .schemas import ReductionRequest, RestockRequest, StockTransactionResponse, as_utc

_LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def project_transaction(transaction: StockTransaction) -> StockTransactionResponse:
    """Build the read model, resolving display names from the loaded relationships."""

    vendor = transaction.vendor
    user = transaction.created_by
    return StockTransactionResponse(
        id=transaction.id,
        inventory_id=transaction.inventory_id,
        inventory_name=transaction.item.name,
        transaction_type=TransactionType(transaction.transaction_type),
        quantity=transaction.quantity,
        vendor_id=transaction.vendor_id,
        vendor_name=vendor.name if vendor is not None else None,
        transaction_date=transaction.transaction_date,
        reduction_reason=transaction.reduction_reason,
        notes=transaction.notes,
        unit_cost=transaction.unit_cost,
        created_by_user_id=transaction.created_by_user_id,
        created_by_user_name=user.display_name if user is not None else None,
        created_at=transaction.created_at,
    )


class _KeyedLocks:
    """One ``asyncio.Lock`` per key, discarded once nobody holds or waits for it."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: defaultdict[int, int] = defaultdict(int)

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: int) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


@dataclass
class _Posted:
    transaction: StockTransactionResponse
    balance: int
    low_stock: LowStockEvent | None


class StockLedger:
    """Records restocks and reductions against inventory balances."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        notifier: LowStockNotifier | None = None,
        max_attempts: int = 3,
        clock: Clock = _utcnow,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._session_factory = session_factory
        self._notifier = notifier
        self._max_attempts = max_attempts
        self._clock = clock
        self._locks = _KeyedLocks()

    async def record_transaction(
        self,
        inventory_id: int,
        request: RestockRequest | ReductionRequest,
    ) -> StockTransactionResponse:
        """Validate and post ``request`` against item ``inventory_id``.

        Raises :class:`StockValidationError`, :class:`NotFoundError`,
        :class:`InsufficientStockError` or, when concurrent writers win every
        attempt, :class:`ConcurrencyConflict`. Nothing is written when any of
        them is raised.
        """

        try:
            self._validate(request)
            async with self._locks.hold(inventory_id):
                posted = await self._post_with_retry(inventory_id, request)
        except LedgerError as exc:
            STOCK_TRANSACTIONS_REJECTED_TOTAL.labels(reason=normalise_rejection_reason(exc.reason)).inc()
            _LOGGER.info("Rejected stock transaction for inventory %s: %s", inventory_id, exc)
            raise

        transaction_type = posted.transaction.transaction_type.value
        STOCK_TRANSACTIONS_TOTAL.labels(transaction_type=transaction_type).inc()
        STOCK_TRANSACTION_QUANTITY_TOTAL.labels(transaction_type=transaction_type).inc(posted.transaction.quantity)
        _LOGGER.info(
            "Posted %s of %d to inventory %s; balance is now %d",
            transaction_type,
            posted.transaction.quantity,
            inventory_id,
            posted.balance,
        )
        if posted.low_stock is not None:
            await self._raise_low_stock(posted.low_stock)
        return posted.transaction

    async def list_transactions(self, inventory_id: int) -> list[StockTransactionResponse]:
        """Return the item's history, newest business date first, newest recording first within a date."""

        async with lifespan_session(self._session_factory) as session:
            repository = InventoryRepository(session)
            if await repository.get_item(inventory_id) is None:
                raise NotFoundError("Inventory item", inventory_id)
            transactions = await repository.list_transactions(inventory_id)
            return [project_transaction(transaction) for transaction in transactions]

    def _validate(self, request: RestockRequest | ReductionRequest) -> None:
        if request.quantity is None or request.quantity <= 0:
            raise StockValidationError("Quantity must be greater than 0")
        if request.quantity > MAX_QUANTITY:
            raise StockValidationError(f"Quantity must not exceed {MAX_QUANTITY}")
        if request.transaction_date is None:
            raise StockValidationError("Transaction date is required")
        if as_utc(request.transaction_date) > self._clock():
            raise StockValidationError("Transaction date cannot be in the future")
        if request.transaction_type == TransactionType.RESTOCK:
            if request.vendor_id is None:
                raise StockValidationError("Vendor is required for restock transactions")
        elif request.transaction_type == TransactionType.REDUCTION:
            if getattr(request, "reduction_reason", None) is None:
                raise StockValidationError("Reduction reason is required for reduction transactions")
        else:
            raise StockValidationError(f"Invalid transaction type: {request.transaction_type}")

    async def _post_with_retry(
        self,
        inventory_id: int,
        request: RestockRequest | ReductionRequest,
    ) -> _Posted:
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._post(inventory_id, request)
            except StaleDataError:
                LEDGER_CONFLICT_RETRIES_TOTAL.inc()
                _LOGGER.warning(
                    "Concurrent update on inventory %s (attempt %d of %d)",
                    inventory_id,
                    attempt,
                    self._max_attempts,
                )
        raise ConcurrencyConflict(inventory_id, self._max_attempts)

    async def _post(self, inventory_id: int, request: RestockRequest | ReductionRequest) -> _Posted:
        async with lifespan_session(self._session_factory) as session:
            inventory = InventoryRepository(session)
            item = await inventory.get_item(inventory_id, for_update=True)
            if item is None:
                raise NotFoundError("Inventory item", inventory_id)

            vendor: Vendor | None = None
            if request.vendor_id is not None:
                vendor = await VendorRepository(session).get_vendor(request.vendor_id)
                if vendor is None:
                    raise NotFoundError("Vendor", request.vendor_id)

            user: User | None = None
            if request.created_by_user_id is not None:
                user = await UserRepository(session).get_user(request.created_by_user_id)
                if user is None:
                    raise NotFoundError("User", request.created_by_user_id)

            transaction_date = as_utc(request.transaction_date)
            reduction_reason = getattr(request, "reduction_reason", None)
            if request.transaction_type == TransactionType.RESTOCK:
                new_quantity = item.quantity + request.quantity
                if new_quantity > MAX_QUANTITY:
                    raise StockValidationError(
                        f"Restock would raise the balance above {MAX_QUANTITY}. Current quantity: {item.quantity}"
                    )
            else:
                new_quantity = item.quantity - request.quantity
                if new_quantity < 0:
                    raise InsufficientStockError(
                        inventory_id=inventory_id,
                        current_quantity=item.quantity,
                        requested_quantity=request.quantity,
                    )

            item.quantity = new_quantity
            if request.transaction_type == TransactionType.RESTOCK:
                item.last_restocked_date = transaction_date
            transaction = await inventory.append_transaction(
                item,
                transaction_type=TransactionType(request.transaction_type).value,
                quantity=request.quantity,
                transaction_date=transaction_date,
                vendor=vendor,
                reduction_reason=ReductionReason(reduction_reason).value if reduction_reason is not None else None,
                unit_cost=request.unit_cost,
                notes=request.notes,
                created_by=user,
            )
            projection = project_transaction(transaction)

            low_stock = None
            if item.minimum_stock is not None and new_quantity < item.minimum_stock:
                low_stock = LowStockEvent(
                    inventory_id=item.id,
                    inventory_name=item.name,
                    current_quantity=new_quantity,
                    minimum_stock=item.minimum_stock,
                )
        # Leaving the session block committed the unit of work.
        return _Posted(transaction=projection, balance=new_quantity, low_stock=low_stock)

    async def _raise_low_stock(self, event: LowStockEvent) -> None:
        LOW_STOCK_EVENTS_TOTAL.inc()
        if self._notifier is None:
            return
        try:
            await self._notifier.low_stock(event)
        except Exception:
            # Already committed; delivery failures are counted, not raised.
            LOW_STOCK_NOTIFY_FAILURES_TOTAL.inc()
            _LOGGER.exception("Failed to deliver low-stock event for inventory %s", event.inventory_id)
