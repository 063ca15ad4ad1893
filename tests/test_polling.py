"""Polling headers and conditional re-fetch."""

from orderflow.services.polling import PollingView, compute_etag, poll_interval


def test_poll_intervals_follow_settings():
    assert poll_interval(PollingView.KITCHEN_DISPLAY) == 5
    assert poll_interval(PollingView.ORDER_BOARD) == 30
    assert poll_interval(PollingView.ORDER_HISTORY) == 60
    assert poll_interval(PollingView.TABLE_MAP) == 30


def test_etag_is_weak_and_key_order_independent():
    first = compute_etag({"a": 1, "b": [1, 2]})

    assert first.startswith('W/"')
    assert first == compute_etag({"b": [1, 2], "a": 1})
    assert first != compute_etag({"a": 2, "b": [1, 2]})


async def test_kitchen_queue_carries_polling_headers(client, staff):
    response = await client.get("/api/kitchen/queue", headers=staff("chef"))

    assert response.status_code == 200
    assert response.headers["X-Poll-Interval"] == "5"
    assert response.headers["Cache-Control"] == "no-cache"
    assert response.headers["ETag"].startswith('W/"')


async def test_unchanged_queue_answers_304(client, order_payload, staff):
    chef = staff("chef")
    await client.post("/api/orders", json=order_payload())
    first = await client.get("/api/kitchen/queue", headers=chef)
    etag = first.headers["ETag"]

    unchanged = await client.get("/api/kitchen/queue", headers={**chef, "If-None-Match": etag})
    await client.post("/api/orders", json=order_payload(customerName="Ben"))
    changed = await client.get("/api/kitchen/queue", headers={**chef, "If-None-Match": etag})

    assert unchanged.status_code == 304
    assert unchanged.content == b""
    assert changed.status_code == 200
    assert len(changed.json()["orders"]) == 2
    assert changed.headers["ETag"] != etag


async def test_order_board_and_table_map_intervals(client, staff):
    orders = await client.get("/api/orders", headers=staff("manager"))
    history = await client.get("/api/orders?type=history", headers=staff("manager"))
    tables = await client.get("/api/tables", headers=staff("manager"))

    assert orders.headers["X-Poll-Interval"] == "30"
    assert history.headers["X-Poll-Interval"] == "60"
    assert tables.headers["X-Poll-Interval"] == "30"
