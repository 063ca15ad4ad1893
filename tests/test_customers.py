"""Returning-customer profiles."""


async def test_register_then_recognize(client):
    created = await client.post("/api/customers", json={"name": "Ana", "tableNumber": 4})
    again = await client.post("/api/customers", json={"name": "Ana", "tableNumber": 4})
    found = await client.get("/api/customers/search", params={"name": "Ana", "tableNumber": 4})

    assert created.status_code == 201
    assert again.status_code == 200
    assert again.json()["id"] == created.json()["id"]
    assert found.status_code == 200
    assert found.json()["id"] == created.json()["id"]


async def test_same_name_at_another_table_is_a_new_profile(client):
    first = await client.post("/api/customers", json={"name": "Ana", "tableNumber": 4})
    second = await client.post("/api/customers", json={"name": "Ana", "tableNumber": 5})

    assert second.status_code == 201
    assert second.json()["id"] != first.json()["id"]


async def test_search_errors(client):
    missing = await client.get("/api/customers/search", params={"name": "Ana"})
    unknown = await client.get("/api/customers/search", params={"name": "Zed", "tableNumber": 1})

    assert missing.status_code == 400
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Customer not found"


async def test_register_validates_input(client):
    response = await client.post("/api/customers", json={"name": "", "tableNumber": 0})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_blank_name_is_rejected(client):
    response = await client.post("/api/customers", json={"name": "   ", "tableNumber": 4})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_name_is_stored_trimmed(client):
    response = await client.post("/api/customers", json={"name": "  Ana  ", "tableNumber": 4})

    assert response.status_code == 201
    assert response.json()["name"] == "Ana"


async def test_customers_are_open_to_guests_and_staff(client, staff):
    guest = await client.post("/api/customers", json={"name": "Ana", "tableNumber": 4})
    server = await client.get(
        "/api/customers/search", params={"name": "Ana", "tableNumber": 4}, headers=staff("server")
    )
    bad_session = await client.post(
        "/api/customers", json={"name": "Ana", "tableNumber": 4}, headers={"X-Staff-Role": "owner"}
    )

    assert guest.status_code == 201
    assert server.status_code == 200
    assert bad_session.status_code == 401
