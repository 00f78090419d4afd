from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotel_erp.common import ServiceSettings
from hotel_erp.inventory_service.app.main import create_app


def _settings(tmp_path) -> ServiceSettings:
    return ServiceSettings(
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'health.db'}",
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/health", "/health/ready"])
async def test_health_endpoints_return_ok(tmp_path, path: str) -> None:
    app = create_app(_settings(tmp_path))

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(path)

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_default_app_name_is_replaced_with_service_name(tmp_path) -> None:
    app = create_app(_settings(tmp_path))

    assert app.title == "Inventory Service"
    assert app.state.settings.app_name == "Inventory Service"


@pytest.mark.asyncio
async def test_lifespan_wires_and_releases_the_ledger(tmp_path) -> None:
    app = create_app(_settings(tmp_path))

    async with lifespan(app):
        assert app.state.stock_ledger is not None
        assert app.state.event_bus.subscriber_count("inventory.stock.low.v1") == 1

    assert app.state.stock_ledger is None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/inventory/1/stock-transactions")
    assert response.status_code == 503


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
