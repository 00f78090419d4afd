from contextlib import asynccontextmanager

from fastapi import FastAPI

from hotel_erp.common import (
    DEFAULT_APP_NAME,
    EventConsumer,
    EventProducer,
    InMemoryEventBus,
    ServiceSettings,
    build_app,
    configure_logging,
    create_schema,
    dispose_engines,
    get_session_factory,
    resolve_database_url,
)

from .api.health import router as health_router
from .api.inventory import router as inventory_router
from .api.messages import router as messages_router
from .api.reports import router as reports_router
from .api.stock_transactions import router as stock_transactions_router
from .api.users import router as users_router
from .api.vendors import router as vendors_router
from .event_handlers import LowStockAlertHandler
from .events import LOW_STOCK_TOPIC, InventoryEventPublisher
from .ledger import StockLedger
from .models import Base

SERVICE_NAME = "Inventory Service"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./inventory_service.db"


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Create the Inventory Service FastAPI application."""

    resolved_settings = settings or ServiceSettings()
    if resolved_settings.app_name == DEFAULT_APP_NAME:
        resolved_settings = resolved_settings.model_copy(update={"app_name": SERVICE_NAME})
    configure_logging(resolved_settings)
    database_url = resolve_database_url(resolved_settings, DEFAULT_DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        producer: EventProducer | None = None
        consumer: EventConsumer | None = None
        session_factory = get_session_factory(database_url)
        app.state.session_factory = session_factory
        try:
            await create_schema(database_url, Base.metadata)
            event_bus = InMemoryEventBus()
            producer = EventProducer(event_bus, bootstrap_servers=resolved_settings.kafka_bootstrap_servers)
            await producer.connect()
            event_publisher = InventoryEventPublisher(producer)
            alert_handler = LowStockAlertHandler(
                session_factory,
                roles=resolved_settings.low_stock_alert_roles,
            )
            consumer = EventConsumer(event_bus, [LOW_STOCK_TOPIC], alert_handler.handle)
            await consumer.start()
            app.state.event_bus = event_bus
            app.state.event_publisher = event_publisher
            app.state.low_stock_alert_handler = alert_handler
            app.state.stock_ledger = StockLedger(
                session_factory,
                notifier=event_publisher,
                max_attempts=resolved_settings.stock_ledger_max_attempts,
            )
            yield
        finally:
            app.state.session_factory = None
            app.state.event_bus = None
            app.state.event_publisher = None
            app.state.low_stock_alert_handler = None
            app.state.stock_ledger = None
            if consumer is not None:
                await consumer.stop()
            if producer is not None:
                await producer.close()
            await dispose_engines()

    app = build_app(resolved_settings, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(inventory_router)
    app.include_router(stock_transactions_router)
    app.include_router(vendors_router)
    app.include_router(users_router)
    app.include_router(messages_router)
    app.include_router(reports_router)
    return app


app = create_app()
