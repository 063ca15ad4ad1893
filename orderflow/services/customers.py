"""
Customer Directory

Lightweight profiles used to greet a returning diner at the same table.
Not an authentication principal.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import NotFoundError
from orderflow.models import Customer

logger = logging.getLogger(__name__)


class CustomerDirectory:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, name: str, table_number: int) -> Optional[Customer]:
        result = await self.db.execute(
            select(Customer)
            .where(Customer.name == name.strip(), Customer.table_number == table_number)
            .order_by(Customer.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def register(self, name: str, table_number: int) -> tuple[Customer, bool]:
        """
        Upsert by name and table.

        Returns:
            (customer, created) - an existing profile gets its last visit refreshed
        """
        customer = await self.find(name, table_number)
        if customer is not None:
            customer.last_visit = datetime.now(timezone.utc)
            await self.db.commit()
            logger.info(f"Customer #{customer.id} ({customer.name}) back at table {table_number}")
            return customer, False

        customer = Customer(name=name.strip(), table_number=table_number)
        self.db.add(customer)
        await self.db.commit()
        logger.info(f"Customer #{customer.id} ({customer.name}) registered at table {table_number}")
        return customer, True

    async def recognize(self, name: str, table_number: int) -> Customer:
        """Look up a known diner and refresh their last visit."""
        customer = await self.find(name, table_number)
        if customer is None:
            raise NotFoundError("Customer not found")

        customer.last_visit = datetime.now(timezone.utc)
        await self.db.commit()
        return customer
