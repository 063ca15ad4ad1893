"""Order creation, retrieval and the order API."""

import pytest
from sqlalchemy import func, select

from orderflow.core.errors import OrderNotFoundError, ValidationError
from orderflow.core.security import ANONYMOUS
from orderflow.database import async_session_maker
from orderflow.models import MenuItem, Order, OrderItem, OrderPriority, OrderStatus, OrderType
from orderflow.schemas import OrderCreate
from orderflow.services.order_store import OrderStore


async def _count(model) -> int:
    async with async_session_maker() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar_one()


# =============================================================================
# API
# =============================================================================

async def test_create_order_returns_full_order(client, order_payload):
    response = await client.post("/api/orders", json=order_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["priority"] == "medium"
    assert body["orderType"] == "dine_in"
    assert body["tableNumber"] == 4
    assert body["totalAmount"] == 1350
    assert body["estimatedReadyTime"] is None
    assert [item["quantity"] for item in body["items"]] == [2, 1]
    assert body["items"][0]["menuItem"]["name"] == "Burger"


async def test_get_order_requires_kitchen_role(client, order_payload, staff):
    created = (await client.post("/api/orders", json=order_payload())).json()

    anonymous = await client.get(f"/api/orders/{created['id']}")
    server = await client.get(f"/api/orders/{created['id']}", headers=staff("server"))
    chef = await client.get(f"/api/orders/{created['id']}", headers=staff("chef"))

    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "UNAUTHORIZED"
    assert server.status_code == 403
    assert chef.status_code == 200
    assert chef.json()["customerName"] == "Ana Lopez"


async def test_unknown_order_is_404(client, staff):
    response = await client.get("/api/orders/999", headers=staff("manager"))

    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"


async def test_unknown_staff_role_is_401(client):
    response = await client.get("/api/orders", headers={"X-Staff-Role": "dishwasher"})

    assert response.status_code == 401


async def test_dine_in_without_table_is_rejected(client, order_payload):
    payload = order_payload()
    del payload["tableNumber"]

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert await _count(Order) == 0


async def test_takeaway_drops_table_number(client, order_payload):
    response = await client.post("/api/orders", json=order_payload(orderType="takeaway"))

    assert response.status_code == 201
    assert response.json()["tableNumber"] is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"orderItems": []},
        {"customerName": ""},
        {"totalAmount": -1},
        {"orderType": "delivery"},
    ],
)
async def test_malformed_order_is_rejected(client, order_payload, overrides):
    response = await client.post("/api/orders", json=order_payload(**overrides))

    assert response.status_code == 400
    assert response.json()["details"]


async def test_zero_quantity_line_is_rejected(client, order_payload, menu):
    payload = order_payload(orderItems=[{"menuItemId": menu["burger"], "quantity": 0, "price": 500}])

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 400


async def test_unknown_menu_item_leaves_nothing_behind(client, order_payload, menu):
    payload = order_payload(
        orderItems=[
            {"menuItemId": menu["burger"], "quantity": 2, "price": 500},
            {"menuItemId": 9999, "quantity": 1, "price": 350},
        ]
    )

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 400
    assert "9999" in response.json()["details"][0]["message"]
    assert await _count(Order) == 0
    assert await _count(OrderItem) == 0


async def test_list_orders_partitions_active_and_history(client, order_payload, staff):
    chef = staff("chef")
    first = (await client.post("/api/orders", json=order_payload())).json()
    second = (await client.post("/api/orders", json=order_payload(customerName="Ben"))).json()
    await client.patch(f"/api/orders/{first['id']}/status", json={"status": "completed"}, headers=chef)

    active = (await client.get("/api/orders", headers=chef)).json()
    history = (await client.get("/api/orders?type=history", headers=chef)).json()

    assert [o["id"] for o in active] == [second["id"]]
    assert [o["id"] for o in history] == [first["id"]]


async def test_list_orders_by_status(client, order_payload, staff):
    chef = staff("chef")
    first = (await client.post("/api/orders", json=order_payload())).json()
    await client.post("/api/orders", json=order_payload(customerName="Ben"))
    await client.patch(f"/api/orders/{first['id']}/status", json={"status": "confirmed"}, headers=chef)

    confirmed = await client.get("/api/orders?status=confirmed", headers=chef)
    bogus = await client.get("/api/orders?status=eaten", headers=chef)

    assert [o["id"] for o in confirmed.json()] == [first["id"]]
    assert bogus.status_code == 400


# =============================================================================
# STORE
# =============================================================================

def _order_create(menu: dict[str, int], **overrides) -> OrderCreate:
    data = {
        "order_type": OrderType.DINE_IN,
        "customer_name": "Ana Lopez",
        "table_number": 4,
        "total_amount": 1350,
        "order_items": [
            {"menu_item_id": menu["burger"], "quantity": 2, "price": 500},
            {"menu_item_id": menu["fries"], "quantity": 1, "price": 350},
        ],
    }
    data.update(overrides)
    return OrderCreate(**data)


async def test_store_initializes_lifecycle_fields(session, menu):
    order = await OrderStore(session).create_order(_order_create(menu), ANONYMOUS)

    assert order.status == OrderStatus.PENDING
    assert order.priority == OrderPriority.MEDIUM
    assert order.created_at is not None
    assert sum(item.line_total for item in order.items) == order.total_amount == 1350


async def test_failed_commit_rolls_back_every_row(session, menu, monkeypatch):
    async def flush_then_fail():
        await session.flush()
        raise RuntimeError("disk full")

    monkeypatch.setattr(session, "commit", flush_then_fail)

    with pytest.raises(RuntimeError):
        await OrderStore(session).create_order(_order_create(menu), ANONYMOUS)

    assert await _count(Order) == 0
    assert await _count(OrderItem) == 0


async def test_store_rejects_unknown_menu_item(session, menu):
    data = _order_create(menu, order_items=[{"menu_item_id": 4242, "quantity": 1, "price": 100}])

    with pytest.raises(ValidationError):
        await OrderStore(session).create_order(data, ANONYMOUS)


async def test_line_price_is_snapshot_while_menu_fields_are_live(session, menu):
    store = OrderStore(session)
    order = await store.create_order(_order_create(menu), ANONYMOUS)

    burger = await session.get(MenuItem, menu["burger"])
    burger.price = 900
    burger.name = "Double Burger"
    await session.commit()

    reloaded = await store.get_order(order.id)
    line = reloaded.items[0]
    assert line.price == 500
    assert line.menu_item.price == 900
    assert line.menu_item.name == "Double Burger"
    assert reloaded.total_amount == 1350


async def test_get_order_unknown_id(session):
    with pytest.raises(OrderNotFoundError):
        await OrderStore(session).get_order(12345)
