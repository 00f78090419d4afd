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
    settings = ServiceSettings(
        app_name="Inventory Directory Test",
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'directory.db'}",
    )
    return create_app(settings)


def _user_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "firstName": "Maria",
        "lastName": "Santos",
        "email": "maria@hotel.test",
        "username": "MSantos",
        "role": "Manager",
    }
    payload.update(overrides)
    return payload


def test_vendor_lifecycle_is_soft_delete(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                created = await client.post(
                    "/vendors",
                    json={"name": "Fresh Linen Ltd", "phoneNumber": "555-0100", "contactPerson": "Joe"},
                )
                assert created.status_code == 201
                vendor = created.json()
                assert vendor["isActive"] is True
                assert vendor["contactPerson"] == "Joe"
                vendor_id = vendor["id"]
                await client.post("/vendors", json={"name": "Acme Cleaning"})

                updated = await client.patch(f"/vendors/{vendor_id}", json={"services": "Towels, sheets"})
                assert updated.status_code == 200
                assert updated.json()["services"] == "Towels, sheets"

                assert (await client.patch(f"/vendors/{vendor_id}", json={"name": None})).status_code == 400
                assert (await client.patch(f"/vendors/{vendor_id}", json={"rating": 5})).status_code == 400

                item = await client.post("/inventory", json={"name": "Sheet", "category": "Linen"})
                item_id = item.json()["id"]
                restock = await client.post(
                    f"/inventory/{item_id}/stock-transactions",
                    json={
                        "transactionType": "Restock",
                        "quantity": 12,
                        "vendorId": vendor_id,
                        "transactionDate": datetime(2024, 4, 1, tzinfo=timezone.utc).isoformat(),
                    },
                )
                assert restock.status_code == 201

                deactivated = await client.delete(f"/vendors/{vendor_id}")
                assert deactivated.status_code == 200
                assert deactivated.json()["isActive"] is False

                still_there = await client.get(f"/vendors/{vendor_id}")
                assert still_there.status_code == 200
                active = await client.get("/vendors", params={"activeOnly": "true"})
                assert [entry["name"] for entry in active.json()] == ["Acme Cleaning"]
                everyone = await client.get("/vendors")
                assert [entry["name"] for entry in everyone.json()] == ["Acme Cleaning", "Fresh Linen Ltd"]

                history = await client.get(f"/inventory/{item_id}/stock-transactions")
                assert history.json()[0]["vendorName"] == "Fresh Linen Ltd"

                assert (await client.get("/vendors/999")).status_code == 404

    _run(body())
    _run(dispose_engines())


def test_user_directory(tmp_path) -> None:
    app = _prepare_app(tmp_path)

    async def body() -> None:
        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                created = await client.post("/users", json=_user_payload())
                assert created.status_code == 201
                user = created.json()
                assert user["username"] == "msantos"
                assert user["displayName"] == "Maria Santos"
                assert user["role"] == "Manager"
                assert user["isActive"] is True

                duplicate = await client.post("/users", json=_user_payload(username="msantos", email="m2@hotel.test"))
                assert duplicate.status_code == 409

                invalid = await client.post("/users", json=_user_payload(username="other", email="not-an-email"))
                assert invalid.status_code == 400

                await client.post(
                    "/users",
                    json=_user_payload(firstName="Li", lastName="Chen", username="lchen", role="Worker"),
                )
                managers = await client.get("/users", params={"role": "Manager"})
                assert [entry["username"] for entry in managers.json()] == ["msantos"]
                everyone = await client.get("/users")
                assert [entry["username"] for entry in everyone.json()] == ["lchen", "msantos"]

                fetched = await client.get(f"/users/{user['id']}")
                assert fetched.json()["email"] == "maria@hotel.test"
                assert (await client.get("/users/999")).status_code == 404

                empty_inbox = await client.get("/messages", params={"receiverId": user["id"]})
                assert empty_inbox.json() == []
                assert (await client.post("/messages/999/read")).status_code == 404

    _run(body())
    _run(dispose_engines())


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
