"""Application wiring: root, health, error shapes and a full dinner service."""

from httpx import ASGITransport, AsyncClient

from orderflow.main import app
from orderflow.services.order_store import OrderStore


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/health"


async def test_health_reports_database(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "healthy"
    assert body["status"] in ("operational", "degraded")


def test_polled_lists_document_their_bodies():
    paths = app.openapi()["paths"]

    for path in ("/api/orders", "/api/orders/history", "/api/tables", "/api/kitchen/queue"):
        responses = paths[path]["get"]["responses"]
        assert "schema" in responses["200"]["content"]["application/json"], path
        assert "304" in responses, path

    orders = paths["/api/orders"]["get"]["responses"]["200"]["content"]["application/json"]["schema"]
    assert orders["type"] == "array"


async def test_unexpected_failure_is_a_generic_500(database, staff, monkeypatch):
    async def explode(self):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(OrderStore, "get_active_orders", explode)
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/orders", headers=staff("manager"))

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert response.json()["details"] is None


async def test_dinner_service_end_to_end(client, order_payload, staff):
    chef = staff("chef")
    manager = staff("manager")
    server = staff("server")

    table = await client.post(
        "/api/tables",
        json={"tableNumber": 4, "capacity": 4, "shape": "square", "positionX": 3, "positionY": 0},
        headers=manager,
    )
    assert table.status_code == 201
    seated = await client.patch(
        f"/api/tables/{table.json()['id']}/status",
        json={"status": "occupied", "customerName": "Ana Lopez"},
        headers=server,
    )
    assert seated.json()["status"] == "occupied"

    order = (await client.post("/api/orders", json=order_payload())).json()
    assert order["totalAmount"] == 1350
    assert sum(i["price"] * i["quantity"] for i in order["items"]) == 1350

    for status in ("confirmed", "preparing", "ready", "completed"):
        step = await client.patch(f"/api/orders/{order['id']}/status", json={"status": status}, headers=chef)
        assert step.status_code == 200

    queue = (await client.get("/api/kitchen/queue", headers=chef)).json()
    history = (await client.get("/api/orders?type=history", headers=chef)).json()
    assert queue["orders"] == []
    assert [o["id"] for o in history] == [order["id"]]

    second = (await client.post("/api/orders", json=order_payload())).json()
    await client.patch(f"/api/orders/{second['id']}/status", json={"status": "confirmed"}, headers=chef)
    skipped = await client.patch(
        f"/api/orders/{second['id']}/status", json={"status": "completed"}, headers=chef
    )
    assert skipped.status_code == 200
    assert skipped.json()["status"] == "completed"
