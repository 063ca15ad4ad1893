"""
Order Store

Creation and retrieval of orders together with their line items.

An order and all of its lines are written in a single transaction: a
reader either sees the complete order or nothing. Line prices are the
snapshot submitted with the order; the menu fields joined on retrieval
are read live.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderflow.core.errors import OrderNotFoundError, ValidationError
from orderflow.core.security import ANONYMOUS, Caller, Capability, authorize
from orderflow.models import (
    ACTIVE_STATUSES,
    HISTORICAL_STATUSES,
    MenuItem,
    Order,
    OrderItem,
    OrderPriority,
    OrderStatus,
)
from orderflow.schemas import OrderCreate

logger = logging.getLogger(__name__)


def _with_items():
    return selectinload(Order.items).selectinload(OrderItem.menu_item)


class OrderStore:
    """Persistence gateway for orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # CREATION
    # =========================================================================

    async def _check_menu_items(self, menu_item_ids: Iterable[int]) -> None:
        wanted = set(menu_item_ids)
        result = await self.db.execute(select(MenuItem.id).where(MenuItem.id.in_(wanted)))
        missing = sorted(wanted - set(result.scalars().all()))
        if missing:
            raise ValidationError(
                "Invalid order data",
                details=[
                    {"field": "orderItems.menuItemId", "message": f"Unknown menu item {m}"}
                    for m in missing
                ],
            )

    async def create_order(self, data: OrderCreate, caller: Caller = ANONYMOUS) -> Order:
        """
        Persist an order and its lines atomically.

        The returned order has its items loaded with their menu items.

        Raises:
            ValidationError: a referenced menu item does not exist
        """
        authorize(caller, Capability.ORDERS_CREATE)
        await self._check_menu_items(item.menu_item_id for item in data.order_items)

        if data.items_total != data.total_amount:
            logger.warning(
                f"Order for {data.customer_name}: totalAmount {data.total_amount} "
                f"differs from line items sum {data.items_total}"
            )

        order = Order(
            order_type=data.order_type,
            status=OrderStatus.PENDING,
            priority=OrderPriority.MEDIUM,
            table_number=data.table_number,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            total_amount=data.total_amount,
            special_instructions=data.special_instructions,
        )
        order.items = [
            OrderItem(
                menu_item_id=item.menu_item_id,
                quantity=item.quantity,
                price=item.price,
                special_instructions=item.special_instructions,
            )
            for item in data.order_items
        ]

        try:
            self.db.add(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(f"Order for {data.customer_name} rolled back")
            raise

        logger.info(
            f"Order #{order.id} created ({data.order_type.value}, "
            f"{len(data.order_items)} items, {data.total_amount} cents)"
        )
        return await self.get_order(order.id)

    # =========================================================================
    # RETRIEVAL
    # =========================================================================

    async def get_order(self, order_id: int) -> Order:
        """Order with its lines and their live menu fields."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(_with_items())
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _list(
        self,
        statuses: Sequence[OrderStatus],
        since: Optional[datetime] = None,
    ) -> list[Order]:
        query = (
            select(Order)
            .where(Order.status.in_(statuses))
            .options(_with_items())
            .order_by(Order.created_at, Order.id)
            .execution_options(populate_existing=True)
        )
        if since is not None:
            query = query.where(Order.created_at >= since)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_orders(self) -> list[Order]:
        """Orders still in the kitchen flow, oldest first."""
        return await self._list(ACTIVE_STATUSES)

    async def get_completed_orders(self, since: Optional[datetime] = None) -> list[Order]:
        """Completed and cancelled orders, oldest first."""
        return await self._list(HISTORICAL_STATUSES, since=since)

    async def get_orders_by_status(self, status: OrderStatus) -> list[Order]:
        return await self._list((status,))
