"""
Fulfillment Scheduler

Builds the kitchen work queue from the active orders.

Sort modes:
    priority - urgent, high, medium, low; ties go to the older order
    time     - oldest order first

Overdue is derived on every read from ``estimated_ready_time`` against the
current wall clock and is never written back to storage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from orderflow.core.security import ANONYMOUS, Caller, Capability, authorize
from orderflow.models import ACTIVE_STATUSES, Order, OrderPriority, OrderStatus
from orderflow.services.order_state import next_status
from orderflow.services.order_store import OrderStore

logger = logging.getLogger(__name__)

PRIORITY_RANK: dict[OrderPriority, int] = {
    OrderPriority.URGENT: 0,
    OrderPriority.HIGH: 1,
    OrderPriority.MEDIUM: 2,
    OrderPriority.LOW: 3,
}


class SortMode(str, Enum):
    PRIORITY = "priority"
    TIME = "time"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_overdue(order: Order, now: Optional[datetime] = None) -> bool:
    """An active order whose estimated ready time has already passed."""
    if order.status not in ACTIVE_STATUSES or order.estimated_ready_time is None:
        return False
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return as_utc(order.estimated_ready_time) < now


def _time_key(order: Order) -> tuple:
    return (as_utc(order.created_at), order.id or 0)


def _priority_key(order: Order) -> tuple:
    return (PRIORITY_RANK[order.priority],) + _time_key(order)


def sort_orders(orders: Iterable[Order], mode: SortMode = SortMode.PRIORITY) -> list[Order]:
    key = _priority_key if mode == SortMode.PRIORITY else _time_key
    return sorted(orders, key=key)


@dataclass
class ScheduledOrder:
    """One kitchen queue entry."""
    order: Order
    is_overdue: bool
    next_status: Optional[OrderStatus]


@dataclass
class KitchenQueue:
    sort: SortMode
    generated_at: datetime
    entries: list[ScheduledOrder]

    @property
    def overdue_count(self) -> int:
        return sum(1 for entry in self.entries if entry.is_overdue)


def schedule(
    orders: Iterable[Order],
    mode: SortMode = SortMode.PRIORITY,
    now: Optional[datetime] = None,
) -> list[ScheduledOrder]:
    """Sort ``orders`` and attach the derived per-order flags."""
    now = now or datetime.now(timezone.utc)
    return [
        ScheduledOrder(
            order=order,
            is_overdue=is_overdue(order, now),
            next_status=next_status(order.status),
        )
        for order in sort_orders(orders, mode)
    ]


class FulfillmentScheduler:
    """Reads active orders and presents them as a kitchen queue."""

    def __init__(self, store: OrderStore):
        self.store = store

    async def kitchen_queue(
        self,
        mode: SortMode = SortMode.PRIORITY,
        caller: Caller = ANONYMOUS,
        now: Optional[datetime] = None,
    ) -> KitchenQueue:
        authorize(caller, Capability.ORDERS_READ)
        now = now or datetime.now(timezone.utc)
        orders = await self.store.get_active_orders()
        queue = KitchenQueue(sort=mode, generated_at=now, entries=schedule(orders, mode, now))

        if queue.overdue_count:
            logger.debug(f"Kitchen queue: {queue.overdue_count}/{len(queue.entries)} orders overdue")
        return queue
