import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotel_erp.common import ServiceSettings, dispose_engines
from hotel_erp.inventory_service.app.main import create_app
from hotel_erp.inventory_service.app.reports import DEFAULT_PERIOD, resolve_period


def _run(coro):
    return asyncio.run(coro)


def _prepare_app(tmp_path) -> FastAPI:
    settings = ServiceSettings(
        app_name="Inventory Report Test",
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'reports.db'}",
    )
    return create_app(settings)


def _on(day: int, month: int = 5) -> str:
    return datetime(2024, month, day, 12, 0, tzinfo=timezone.utc).isoformat()


async def _post(client: AsyncClient, item_id: int, payload: dict) -> None:
    response = await client.post(f"/inventory/{item_id}/stock-transactions", json=payload)
    assert response.status_code == 201, response.text


def test_inventory_report_summarises_balances_and_movements(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                vendor_id = (await client.post("/vendors", json={"name": "Supply House"})).json()["id"]
                towels = (
                    await client.post("/inventory", json={"name": "Towel", "category": "Linen", "minimumStock": 5})
                ).json()["id"]
                sheets = (await client.post("/inventory", json={"name": "Sheet", "category": "Linen"})).json()["id"]
                soap = (
                    await client.post("/inventory", json={"name": "Soap", "category": "Amenities", "minimumStock": 10})
                ).json()["id"]

                restock = {"transactionType": "Restock", "vendorId": vendor_id}
                await _post(client, towels, {**restock, "quantity": 10, "transactionDate": _on(1)})
                await _post(
                    client,
                    towels,
                    {"transactionType": "Reduction", "quantity": 5, "reductionReason": "Used", "transactionDate": _on(2)},
                )
                await _post(client, sheets, {**restock, "quantity": 3, "transactionDate": _on(1, month=4)})
                await _post(client, soap, {**restock, "quantity": 4, "transactionDate": _on(1)})
                await _post(
                    client,
                    soap,
                    {"transactionType": "Reduction", "quantity": 2, "reductionReason": "Damaged", "transactionDate": _on(3)},
                )

                response = await client.get(
                    "/reports/inventory",
                    params={"startDate": _on(15, month=4), "endDate": _on(31)},
                )
                assert response.status_code == 200
                report = response.json()

                assert report["totalItems"] == 3
                assert report["lowStockCount"] == 2
                assert report["overallStockHealth"] == 33.3
                assert report["byCategory"] == [
                    {"category": "Amenities", "itemCount": 1, "lowStockCount": 1, "totalQuantity": 2, "stockHealth": 0.0},
                    {"category": "Linen", "itemCount": 2, "lowStockCount": 1, "totalQuantity": 8, "stockHealth": 50.0},
                ]
                assert [(entry["name"], entry["fillRate"]) for entry in report["lowStockItems"]] == [
                    ("Soap", 20.0),
                    ("Towel", 100.0),
                ]
                assert report["movements"] == {
                    "restockedQuantity": 14,
                    "reducedQuantity": 7,
                    "reductionsByReason": {"Used": 5, "Damaged": 2},
                    "transactionCount": 4,
                }

                # Sitting exactly on the minimum shows up in the report but does not flag the item itself.
                towel = (await client.get(f"/inventory/{towels}")).json()
                assert towel["quantity"] == 5
                assert towel["isLowStock"] is False

                default_period = await client.get("/reports/inventory")
                assert default_period.status_code == 200
                assert default_period.json()["totalItems"] == 3

                inverted = await client.get(
                    "/reports/inventory",
                    params={"startDate": _on(31), "endDate": _on(1)},
                )
                assert inverted.status_code == 400

    _run(body())
    _run(dispose_engines())


def test_resolve_period_defaults_to_trailing_window() -> None:
    now = datetime(2024, 6, 30, tzinfo=timezone.utc)

    start, end = resolve_period(None, None, now=now)

    assert end == now
    assert start == now - DEFAULT_PERIOD


def test_resolve_period_treats_naive_bounds_as_utc() -> None:
    start, end = resolve_period(datetime(2024, 1, 1), datetime(2024, 1, 31))

    assert start.tzinfo is timezone.utc
    assert (end - start).days == 30
    with pytest.raises(ValueError):
        resolve_period(datetime(2024, 2, 1), datetime(2024, 1, 1))


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
