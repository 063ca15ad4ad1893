"""
Order History

Reporting over finished (completed or cancelled) orders and hand-off of
finished orders to the Excel ledger worker.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from orderflow.core.config import get_settings
from orderflow.models import Order, OrderStatus
from orderflow.services.order_state import is_terminal
from orderflow.tasks import export_order_to_history

logger = logging.getLogger(__name__)


class HistoryRange(str, Enum):
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    ALL = "all"


_RANGE_DAYS = {
    HistoryRange.LAST_7_DAYS: 7,
    HistoryRange.LAST_30_DAYS: 30,
    HistoryRange.ALL: None,
}


def window_start(range_: HistoryRange, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest creation time included in ``range_``; None for all time."""
    days = _RANGE_DAYS[range_]
    if days is None:
        return None
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


@dataclass
class HistorySummary:
    range: HistoryRange
    total_orders: int
    total_revenue: int
    average_order_value: float
    completed_orders: int
    cancelled_orders: int


def summarize(orders: Iterable[Order], range_: HistoryRange) -> HistorySummary:
    """
    Totals over ``orders``.

    Revenue counts every order in the window, cancelled ones included,
    matching what the history screen has always shown.
    """
    orders = list(orders)
    total = len(orders)
    revenue = sum(o.total_amount for o in orders)
    return HistorySummary(
        range=range_,
        total_orders=total,
        total_revenue=revenue,
        average_order_value=round(revenue / total, 2) if total else 0.0,
        completed_orders=sum(1 for o in orders if o.status == OrderStatus.COMPLETED),
        cancelled_orders=sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
    )


def export_payload(order: Order) -> dict[str, Any]:
    """Flat, JSON-serializable row for the history ledger task."""
    return {
        "order_id": order.id,
        "order_type": order.order_type.value,
        "order_status": order.status.value,
        "priority": order.priority.value,
        "table_number": order.table_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "total_amount": order.total_amount,
        "special_instructions": order.special_instructions,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "estimated_ready_time": (
            order.estimated_ready_time.isoformat() if order.estimated_ready_time else None
        ),
    }


def queue_history_export(order: Order) -> bool:
    """
    Send a finished order to the ledger worker when export is enabled.

    Returns:
        True if a task was queued
    """
    if not get_settings().history_export_enabled or not is_terminal(order.status):
        return False

    try:
        export_order_to_history.delay(export_payload(order))
    except Exception:
        # Status change is already committed
        logger.exception(f"Order #{order.id} could not be queued for history export")
        return False

    logger.info(f"Order #{order.id} queued for history export")
    return True
