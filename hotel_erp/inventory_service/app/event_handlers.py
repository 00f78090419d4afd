"""Consumers that turn inventory events into staff inbox messages."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from hotel_erp.common import lifespan_session

from .events import LOW_STOCK_TOPIC, LowStockEvent
from .metrics import LOW_STOCK_ALERT_MESSAGES_TOTAL
from .models import MessageType
from .repository import MessageRepository, UserRepository

_LOGGER = logging.getLogger(__name__)

LOW_STOCK_SUBJECT = "Low Inventory Alert"


def low_stock_content(event: LowStockEvent) -> str:
    return (
        f"Inventory item '{event.inventory_name}' is running low. "
        f"Current stock: {event.current_quantity}, Minimum: {event.minimum_stock}"
    )


class LowStockAlertHandler:
    """Writes one system alert per active staff member holding an alert role."""

    def __init__(self, session_factory: async_sessionmaker, *, roles: Sequence[str]) -> None:
        self._session_factory = session_factory
        self._roles = list(roles)

    async def handle(self, topic: str, payload: dict[str, Any]) -> None:
        if topic != LOW_STOCK_TOPIC:
            _LOGGER.debug("Ignoring event on unsupported topic %s", topic)
            return
        try:
            event = LowStockEvent.from_payload(payload)
        except (KeyError, TypeError, ValueError):
            _LOGGER.warning("Dropping malformed low-stock event: %s", payload)
            return
        await self.notify(event)

    async def notify(self, event: LowStockEvent) -> int:
        async with lifespan_session(self._session_factory) as session:
            recipients = await UserRepository(session).list_active_by_roles(self._roles)
            messages = MessageRepository(session)
            for user in recipients:
                await messages.add_message(
                    subject=LOW_STOCK_SUBJECT,
                    content=low_stock_content(event),
                    message_type=MessageType.ALERT.value,
                    receiver_id=user.id,
                )
        LOW_STOCK_ALERT_MESSAGES_TOTAL.inc(len(recipients))
        _LOGGER.info(
            "Low-stock alert for inventory %s sent to %d recipient(s)",
            event.inventory_id,
            len(recipients),
        )
        return len(recipients)
