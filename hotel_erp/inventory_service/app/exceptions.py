"""Domain errors raised by the inventory service.

Each error carries a short ``reason`` used as a bounded metrics label.
"""

from __future__ import annotations


class LedgerError(Exception):
    reason = "error"


class StockValidationError(LedgerError):
    """The request is well-formed JSON but breaks a business rule."""

    reason = "validation"


class NotFoundError(LedgerError):
    """A referenced inventory item, vendor or user does not exist."""

    reason = "not_found"

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(LedgerError):
    """A reduction would take the on-hand quantity below zero."""

    reason = "insufficient_stock"

    def __init__(self, *, inventory_id: int, current_quantity: int, requested_quantity: int) -> None:
        super().__init__(
            f"Insufficient stock. Current quantity: {current_quantity}, "
            f"Requested reduction: {requested_quantity}"
        )
        self.inventory_id = inventory_id
        self.current_quantity = current_quantity
        self.requested_quantity = requested_quantity


class ConcurrencyConflict(LedgerError):
    """Concurrent writers kept invalidating the balance; the caller may retry."""

    reason = "concurrency_conflict"

    def __init__(self, inventory_id: int, attempts: int) -> None:
        super().__init__(
            f"Inventory item {inventory_id} was modified concurrently; gave up after {attempts} attempts"
        )
        self.inventory_id = inventory_id
        self.attempts = attempts


class DuplicateError(Exception):
    """A unique business key is already taken."""
