"""
Table Registry

Owns dining tables: identity, grid placement and occupancy.

Table numbers are unique across all tables, including soft-deleted ones.
The registry checks for a taken number before inserting so the common
case gets a friendly error, but two concurrent creations can both pass
that check. The unique constraint on ``tables.table_number`` is what
actually decides; an IntegrityError from it is reported as the same
DuplicateTableNumberError.

Placement helpers only suggest defaults for the creation form.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.config import get_settings
from orderflow.core.errors import (
    DuplicateTableNumberError,
    InvalidStatusError,
    TableNotFoundError,
)
from orderflow.core.security import Caller, Capability, authorize
from orderflow.models import DiningTable, TableStatus
from orderflow.schemas import TableCreate, TableUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# PLACEMENT HELPERS
# =============================================================================

def find_first_available_grid_position(
    occupied: Iterable[tuple[int, int]],
    width: int,
    height: int,
) -> Optional[tuple[int, int]]:
    """First free cell scanning row by row, or None when the grid is full."""
    taken = set(occupied)
    for y in range(height):
        for x in range(width):
            if (x, y) not in taken:
                return x, y
    return None


def find_next_available_table_number(used: Iterable[int]) -> int:
    """Smallest positive table number not in ``used``."""
    taken = set(used)
    candidate = 1
    while candidate in taken:
        candidate += 1
    return candidate


@dataclass
class Placement:
    table_number: int
    position: Optional[tuple[int, int]]
    grid_width: int
    grid_height: int

    @property
    def grid_full(self) -> bool:
        return self.position is None


def parse_table_status(value: Any) -> TableStatus:
    if isinstance(value, TableStatus):
        return value
    try:
        return TableStatus(value)
    except ValueError:
        raise InvalidStatusError(value, [s.value for s in TableStatus], kind="table status")


def _clear_name_if_available(table: DiningTable) -> None:
    """Only occupied and reserved tables show a customer name."""
    if table.status == TableStatus.AVAILABLE:
        table.customer_name = None


# =============================================================================
# REGISTRY
# =============================================================================

class TableRegistry:
    """Table CRUD with soft delete and occupancy toggling."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def list_tables(self, caller: Caller, include_inactive: bool = False) -> list[DiningTable]:
        authorize(caller, Capability.TABLES_READ)
        query = select(DiningTable).order_by(DiningTable.table_number)
        if not include_inactive:
            query = query.where(DiningTable.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_table(self, table_id: int, caller: Caller) -> DiningTable:
        authorize(caller, Capability.TABLES_READ)
        return await self._load(table_id)

    async def _load(self, table_id: int) -> DiningTable:
        table = await self.db.get(DiningTable, table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        return table

    async def table_number_exists(self, table_number: int, exclude_id: Optional[int] = None) -> bool:
        """Whether any table, active or not, already uses ``table_number``."""
        query = select(DiningTable.id).where(DiningTable.table_number == table_number)
        if exclude_id is not None:
            query = query.where(DiningTable.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.first() is not None

    async def _commit_guarding_number(self, table_number: int) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"Table number {table_number} lost a concurrent creation race")
            raise DuplicateTableNumberError(table_number)

    async def create_table(self, data: TableCreate, caller: Caller) -> DiningTable:
        """
        Create an active table.

        Raises:
            DuplicateTableNumberError: number used by any table, ever
        """
        authorize(caller, Capability.TABLES_MANAGE)

        if await self.table_number_exists(data.table_number):
            raise DuplicateTableNumberError(data.table_number)

        table = DiningTable(**data.model_dump(), is_active=True)
        _clear_name_if_available(table)
        self.db.add(table)
        await self._commit_guarding_number(data.table_number)

        logger.info(f"Table {table.table_number} created (id={table.id}) by {caller}")
        return table

    async def update_table(self, table_id: int, data: TableUpdate, caller: Caller) -> DiningTable:
        """Partial update; a changed number goes through the duplicate check."""
        authorize(caller, Capability.TABLES_MANAGE)
        table = await self._load(table_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        new_number = changes.get("table_number")
        if new_number is not None and new_number != table.table_number:
            if await self.table_number_exists(new_number, exclude_id=table_id):
                raise DuplicateTableNumberError(new_number)

        for field, value in changes.items():
            setattr(table, field, value)
        _clear_name_if_available(table)
        await self._commit_guarding_number(table.table_number)

        logger.info(f"Table {table.table_number} (id={table_id}) updated: {sorted(changes)}")
        return table

    async def update_table_status(
        self,
        table_id: int,
        status: Any,
        caller: Caller,
        customer_name: Optional[str] = None,
    ) -> DiningTable:
        """
        Toggle occupancy. Any status may follow any other.

        Occupied and reserved tables show the supplied customer name;
        freeing a table clears it.
        """
        authorize(caller, Capability.TABLES_OCCUPANCY)
        new_status = parse_table_status(status)
        table = await self._load(table_id)

        table.status = new_status
        table.customer_name = customer_name
        _clear_name_if_available(table)
        await self.db.commit()

        logger.info(f"Table {table.table_number} is now {new_status.value} ({caller})")
        return table

    async def delete_table(self, table_id: int, caller: Caller) -> None:
        """Soft delete. The table number stays reserved."""
        authorize(caller, Capability.TABLES_MANAGE)
        table = await self._load(table_id)
        table.is_active = False
        await self.db.commit()
        logger.info(f"Table {table.table_number} (id={table_id}) deactivated by {caller}")

    async def suggest_placement(self, caller: Caller) -> Placement:
        """Default number and grid cell for the next table."""
        authorize(caller, Capability.TABLES_READ)
        result = await self.db.execute(
            select(DiningTable.table_number, DiningTable.position_x, DiningTable.position_y, DiningTable.is_active)
        )
        rows = result.all()

        width, height = self.settings.grid_width, self.settings.grid_height
        position = find_first_available_grid_position(
            ((row.position_x, row.position_y) for row in rows if row.is_active),
            width,
            height,
        )
        return Placement(
            table_number=find_next_available_table_number(row.table_number for row in rows),
            position=position,
            grid_width=width,
            grid_height=height,
        )
