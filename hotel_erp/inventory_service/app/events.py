"""Event publishing helpers for the inventory service."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from hotel_erp.common.events import EventProducer

LOW_STOCK_TOPIC = "inventory.stock.low.v1"


@dataclass(frozen=True)
class LowStockEvent:
    inventory_id: int
    inventory_name: str
    current_quantity: int
    minimum_stock: int

    def to_payload(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "inventoryId": data["inventory_id"],
            "inventoryName": data["inventory_name"],
            "currentQuantity": data["current_quantity"],
            "minimumStock": data["minimum_stock"],
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LowStockEvent:
        return cls(
            inventory_id=int(payload["inventoryId"]),
            inventory_name=str(payload["inventoryName"]),
            current_quantity=int(payload["currentQuantity"]),
            minimum_stock=int(payload["minimumStock"]),
        )


class LowStockNotifier(Protocol):
    """Receives "balance fell below minimum" events; delivery is up to the implementation."""

    async def low_stock(self, event: LowStockEvent) -> None: ...


class InventoryEventPublisher:
    """Publishes inventory domain events onto the service event bus."""

    def __init__(self, producer: EventProducer | None) -> None:
        self._producer = producer

    async def _emit(self, topic: str, payload: dict[str, Any]) -> None:
        if self._producer is None:
            return
        envelope = {
            "eventType": topic,
            "occurredAt": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        await self._producer.send(topic, envelope)

    async def low_stock(self, event: LowStockEvent) -> None:
        await self._emit(LOW_STOCK_TOPIC, event.to_payload())

