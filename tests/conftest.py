"""
Shared fixtures.

The suite runs against a throwaway SQLite file through aiosqlite; the
environment is set before anything from orderflow is imported so the
cached settings and the engine pick it up.
"""

import os
import tempfile
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="orderflow-tests-"))

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'orderflow.db'}"
os.environ["ENV_MODE"] = "development"
os.environ["STATUS_TRANSITION_POLICY"] = "permissive"
os.environ["HISTORY_EXPORT_ENABLED"] = "false"
os.environ["DATA_DIRECTORY"] = str(_DB_DIR / "data")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from orderflow.database import async_session_maker, drop_db, engine, init_db  # noqa: E402
from orderflow.main import app  # noqa: E402
from orderflow.models import MenuItem  # noqa: E402


@pytest.fixture
async def database():
    """Fresh schema for one test."""
    await drop_db()
    await init_db()
    yield
    await engine.dispose()


@pytest.fixture
async def session(database):
    async with async_session_maker() as db:
        yield db


@pytest.fixture
async def client(database):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def menu(database) -> dict[str, int]:
    """Two menu items: burger at 500 cents and fries at 350."""
    async with async_session_maker() as db:
        burger = MenuItem(name="Burger", description="Beef patty", price=500, category="mains")
        fries = MenuItem(name="Fries", description="Skin-on", price=350, category="sides")
        db.add_all([burger, fries])
        await db.commit()
        return {"burger": burger.id, "fries": fries.id}


@pytest.fixture
def staff():
    """Gateway headers for a staff role."""
    def _headers(role: str, username: str = "tester") -> dict[str, str]:
        return {"X-Staff-Role": role, "X-Staff-User": username}
    return _headers


@pytest.fixture
def order_payload(menu):
    """Dine-in order for table 4: 2 burgers and 1 fries, 1350 cents."""
    def _payload(**overrides) -> dict:
        body = {
            "orderType": "dine_in",
            "customerName": "Ana Lopez",
            "customerPhone": "+1 555 0100",
            "tableNumber": 4,
            "totalAmount": 1350,
            "orderItems": [
                {"menuItemId": menu["burger"], "quantity": 2, "price": 500},
                {"menuItemId": menu["fries"], "quantity": 1, "price": 350},
            ],
        }
        body.update(overrides)
        return body
    return _payload
