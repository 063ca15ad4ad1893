"""History windows, summaries and the ledger hand-off."""

from datetime import datetime, timedelta, timezone

from orderflow.core.config import get_settings
from orderflow.models import Order, OrderStatus, OrderType
from orderflow.services import history
from orderflow.services.history import HistoryRange, export_payload, summarize, window_start

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _finished(order_id: int, status: OrderStatus, amount: int) -> Order:
    return Order(
        id=order_id,
        order_type=OrderType.TAKEAWAY,
        status=status,
        customer_name="guest",
        total_amount=amount,
        created_at=NOW,
    )


def test_window_start():
    assert window_start(HistoryRange.ALL, NOW) is None
    assert window_start(HistoryRange.LAST_7_DAYS, NOW) == NOW - timedelta(days=7)
    assert window_start(HistoryRange.LAST_30_DAYS, NOW) == NOW - timedelta(days=30)


def test_summarize():
    orders = [
        _finished(1, OrderStatus.COMPLETED, 1000),
        _finished(2, OrderStatus.COMPLETED, 2000),
        _finished(3, OrderStatus.CANCELLED, 600),
    ]

    summary = summarize(orders, HistoryRange.LAST_7_DAYS)

    assert summary.total_orders == 3
    assert summary.total_revenue == 3600
    assert summary.average_order_value == 1200.0
    assert (summary.completed_orders, summary.cancelled_orders) == (2, 1)


def test_summarize_empty_window():
    summary = summarize([], HistoryRange.ALL)

    assert summary.total_orders == 0
    assert summary.average_order_value == 0.0


def test_export_payload_is_flat():
    payload = export_payload(_finished(7, OrderStatus.COMPLETED, 1350))

    assert payload["order_id"] == 7
    assert payload["order_status"] == "completed"
    assert payload["created_at"] == NOW.isoformat()
    assert payload["estimated_ready_time"] is None


async def test_history_endpoints(client, order_payload, staff):
    chef = staff("chef")
    done = (await client.post("/api/orders", json=order_payload(totalAmount=1350))).json()
    dropped = (await client.post("/api/orders", json=order_payload(customerName="Ben"))).json()
    await client.post("/api/orders", json=order_payload(customerName="Cleo"))
    await client.patch(f"/api/orders/{done['id']}/status", json={"status": "completed"}, headers=chef)
    await client.patch(f"/api/orders/{dropped['id']}/status", json={"status": "cancelled"}, headers=chef)

    listed = await client.get("/api/orders/history?range=30days", headers=chef)
    summary = await client.get("/api/orders/history/summary", headers=chef)
    bad_range = await client.get("/api/orders/history?range=forever", headers=chef)

    assert [o["id"] for o in listed.json()] == [done["id"], dropped["id"]]
    assert summary.json()["range"] == "7days"
    assert summary.json()["totalOrders"] == 2
    assert summary.json()["completedOrders"] == 1
    assert summary.json()["cancelledOrders"] == 1
    assert bad_range.status_code == 400


async def test_finished_orders_are_queued_for_export(client, order_payload, staff, monkeypatch):
    queued = []

    class FakeTask:
        @staticmethod
        def delay(payload):
            queued.append(payload)

    monkeypatch.setattr(history, "export_order_to_history", FakeTask)
    monkeypatch.setattr(get_settings(), "history_export_enabled", True)
    chef = staff("chef")
    order = (await client.post("/api/orders", json=order_payload())).json()

    await client.patch(f"/api/orders/{order['id']}/status", json={"status": "preparing"}, headers=chef)
    await client.patch(f"/api/orders/{order['id']}/status", json={"status": "completed"}, headers=chef)

    assert len(queued) == 1
    assert queued[0]["order_id"] == order["id"]
    assert queued[0]["order_status"] == "completed"
    assert queued[0]["total_amount"] == 1350


async def test_export_disabled_queues_nothing(client, order_payload, staff, monkeypatch):
    queued = []

    class FakeTask:
        @staticmethod
        def delay(payload):
            queued.append(payload)

    monkeypatch.setattr(history, "export_order_to_history", FakeTask)
    order = (await client.post("/api/orders", json=order_payload())).json()

    await client.patch(
        f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=staff("manager")
    )

    assert queued == []


async def test_unreachable_broker_does_not_fail_the_status_change(client, order_payload, staff, monkeypatch):
    class DownBroker:
        @staticmethod
        def delay(payload):
            raise ConnectionError("Error 111 connecting to 127.0.0.1:1. Connection refused.")

    monkeypatch.setattr(history, "export_order_to_history", DownBroker)
    monkeypatch.setattr(get_settings(), "history_export_enabled", True)
    chef = staff("chef")
    order = (await client.post("/api/orders", json=order_payload())).json()

    response = await client.patch(
        f"/api/orders/{order['id']}/status", json={"status": "completed"}, headers=chef
    )
    stored = await client.get(f"/api/orders/{order['id']}", headers=chef)

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert stored.json()["status"] == "completed"


def test_queue_history_export_reports_broker_failure(monkeypatch):
    class DownBroker:
        @staticmethod
        def delay(payload):
            raise ConnectionError("broker down")

    monkeypatch.setattr(history, "export_order_to_history", DownBroker)
    monkeypatch.setattr(get_settings(), "history_export_enabled", True)

    assert history.queue_history_export(_finished(9, OrderStatus.COMPLETED, 500)) is False
