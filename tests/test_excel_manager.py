"""Excel history ledger and its Celery task."""

import pytest

from orderflow.services.excel_manager import ExcelManager
from orderflow.tasks import LedgerWriteError, clear_history_export, export_order_to_history


@pytest.fixture
def ledger(tmp_path, monkeypatch):
    monkeypatch.setattr(ExcelManager, "DATA_DIR", tmp_path / "data")
    return ExcelManager


def _row(order_id: int, status: str = "completed") -> dict:
    return {
        "order_id": order_id,
        "order_type": "dine_in",
        "order_status": status,
        "priority": "medium",
        "table_number": 4,
        "customer_name": "Ana Lopez",
        "customer_phone": None,
        "total_amount": 1350,
        "special_instructions": None,
        "created_at": "2026-06-01T12:00:00+00:00",
        "estimated_ready_time": None,
    }


def test_export_creates_ledger(ledger):
    result = ledger.export_order(_row(1))

    assert result["success"] is True
    assert ledger.ledger_path().exists()
    rows = ledger.get_all_orders()
    assert [r["order_id"] for r in rows] == [1]
    assert rows[0]["total_amount"] == 1350


def test_reexport_replaces_the_row(ledger):
    ledger.export_order(_row(1, "completed"))
    ledger.export_order(_row(2, "completed"))
    ledger.export_order(_row(1, "cancelled"))

    rows = ledger.get_all_orders()

    assert sorted(r["order_id"] for r in rows) == [1, 2]
    assert {r["order_id"]: r["order_status"] for r in rows}[1] == "cancelled"


def test_clear_all(ledger):
    ledger.export_order(_row(1))

    assert ledger.clear_all() is True
    assert ledger.get_all_orders() == []


def test_task_called_directly(ledger):
    result = export_order_to_history(_row(5))

    assert result["success"] is True
    assert "processing_time_seconds" in result


def test_task_raises_when_the_write_fails(ledger, monkeypatch):
    def broken(cls, order_data):
        return {"success": False, "message": "disk full", "order_id": order_data["order_id"]}

    monkeypatch.setattr(ExcelManager, "export_order", classmethod(broken))

    with pytest.raises(LedgerWriteError):
        export_order_to_history(_row(6))


def test_clear_task_removes_the_ledger(ledger):
    ledger.export_order(_row(1))

    result = clear_history_export()

    assert result["success"] is True
    assert not ledger.ledger_path().exists()
