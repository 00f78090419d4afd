import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotel_erp.common import ServiceSettings, dispose_engines
from hotel_erp.inventory_service.app.main import create_app


def _run(coro):
    return asyncio.run(coro)


def _prepare_app(tmp_path) -> FastAPI:
    db_file = tmp_path / "inventory.db"
    settings = ServiceSettings(
        app_name="Inventory Service Test",
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{db_file}",
    )
    return create_app(settings)


def _item_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "Bath Towel",
        "category": "Linen",
        "location": "Store Room A",
        "minimumStock": 5,
        "unitCost": "4.50",
    }
    payload.update(overrides)
    return payload


def test_create_and_get_item_starts_at_zero(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                create_resp = await client.post("/inventory", json=_item_payload(name="  Bath Towel  "))
                assert create_resp.status_code == 201
                created = create_resp.json()
                assert created["name"] == "Bath Towel"
                assert created["quantity"] == 0
                assert created["lastRestockedDate"] is None
                assert created["isLowStock"] is True
                item_id = created["id"]

                get_resp = await client.get(f"/inventory/{item_id}")
                assert get_resp.status_code == 200
                assert get_resp.json()["id"] == item_id
                assert get_resp.json()["minimumStock"] == 5

                missing = await client.get("/inventory/9999")
                assert missing.status_code == 404

    _run(body())
    _run(dispose_engines())


def test_quantity_cannot_be_written_directly(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                rejected_create = await client.post("/inventory", json=_item_payload(quantity=25))
                assert rejected_create.status_code == 400

                created = await client.post("/inventory", json=_item_payload())
                item_id = created.json()["id"]

                rejected_update = await client.patch(f"/inventory/{item_id}", json={"quantity": 25})
                assert rejected_update.status_code == 400

                update = await client.patch(
                    f"/inventory/{item_id}",
                    json={"location": "Store Room B", "minimumStock": 2},
                )
                assert update.status_code == 200
                assert update.json()["location"] == "Store Room B"
                assert update.json()["minimumStock"] == 2
                assert update.json()["quantity"] == 0

                cleared = await client.patch(f"/inventory/{item_id}", json={"name": None})
                assert cleared.status_code == 400

    _run(body())
    _run(dispose_engines())


def test_list_filters_and_paginates(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                await client.post("/inventory", json=_item_payload(name="Shampoo", category="Amenities", minimumStock=None))
                await client.post("/inventory", json=_item_payload(name="Bath Towel"))
                await client.post("/inventory", json=_item_payload(name="Hand Towel", location="Store Room B"))

                linen = await client.get("/inventory", params={"category": "Linen"})
                assert linen.status_code == 200
                assert linen.json()["total"] == 2
                assert [item["name"] for item in linen.json()["items"]] == ["Bath Towel", "Hand Towel"]

                by_location = await client.get("/inventory", params={"location": "Store Room B"})
                assert [item["name"] for item in by_location.json()["items"]] == ["Hand Towel"]

                low = await client.get("/inventory", params={"lowStock": "true"})
                assert {item["name"] for item in low.json()["items"]} == {"Bath Towel", "Hand Towel"}

                healthy = await client.get("/inventory", params={"lowStock": "false"})
                assert [item["name"] for item in healthy.json()["items"]] == ["Shampoo"]

                page = await client.get("/inventory", params={"limit": 1, "offset": 1})
                assert page.json()["total"] == 3
                assert [item["name"] for item in page.json()["items"]] == ["Hand Towel"]

    _run(body())
    _run(dispose_engines())


def test_delete_removes_item_and_history(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                vendor = await client.post("/vendors", json={"name": "Linen Supply Co"})
                item = await client.post("/inventory", json=_item_payload())
                item_id = item.json()["id"]
                restock = await client.post(
                    f"/inventory/{item_id}/stock-transactions",
                    json={
                        "transactionType": "Restock",
                        "quantity": 3,
                        "vendorId": vendor.json()["id"],
                        "transactionDate": datetime(2026, 1, 5, tzinfo=timezone.utc).isoformat(),
                    },
                )
                assert restock.status_code == 201

                deleted = await client.delete(f"/inventory/{item_id}")
                assert deleted.status_code == 204
                assert (await client.get(f"/inventory/{item_id}")).status_code == 404
                assert (await client.get(f"/inventory/{item_id}/stock-transactions")).status_code == 404

                again = await client.delete(f"/inventory/{item_id}")
                assert again.status_code == 204

    _run(body())
    _run(dispose_engines())


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
