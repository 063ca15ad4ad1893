"""
Seed Script

Loads a small menu and a floor layout so the API has something to work
with. Run from project root:

    python scripts/seed.py           # add missing rows
    python scripts/seed.py --reset   # drop and recreate every table first
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import func, select

from orderflow.core.config import setup_logging
from orderflow.database import async_session_maker, drop_db, engine, init_db
from orderflow.models import DiningTable, MenuItem, TableShape

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

logger = logging.getLogger("orderflow.seed")

MENU = [
    ("Pizza Margherita", 1499, "mains"),
    ("Pepperoni Pizza", 1699, "mains"),
    ("Caesar Salad", 899, "starters"),
    ("Garlic Bread", 599, "starters"),
    ("Pasta Carbonara", 1399, "mains"),
    ("Tiramisu", 799, "desserts"),
    ("Coke", 299, "drinks"),
    ("Sparkling Water", 349, "drinks"),
]

# table number, capacity, shape, x, y, width, height
FLOOR = [
    (1, 2, TableShape.ROUND, 0, 0, 1, 1),
    (2, 2, TableShape.ROUND, 1, 0, 1, 1),
    (3, 4, TableShape.SQUARE, 2, 0, 1, 1),
    (4, 4, TableShape.SQUARE, 3, 0, 1, 1),
    (5, 6, TableShape.RECTANGULAR, 0, 1, 2, 1),
    (6, 8, TableShape.RECTANGULAR, 2, 1, 2, 1),
]


async def seed(reset: bool = False) -> None:
    if reset:
        logger.warning("Dropping all tables")
        await drop_db()
    await init_db()

    async with async_session_maker() as db:
        menu_count = (await db.execute(select(func.count()).select_from(MenuItem))).scalar_one()
        if menu_count == 0:
            db.add_all(
                MenuItem(name=name, price=price, category=category, description="")
                for name, price, category in MENU
            )
            logger.info(f"Added {len(MENU)} menu items")

        existing = set((await db.execute(select(DiningTable.table_number))).scalars().all())
        new_tables = [
            DiningTable(
                table_number=number,
                capacity=capacity,
                shape=shape,
                position_x=x,
                position_y=y,
                width=width,
                height=height,
            )
            for number, capacity, shape, x, y, width, height in FLOOR
            if number not in existing
        ]
        db.add_all(new_tables)
        await db.commit()
        logger.info(f"Added {len(new_tables)} tables")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed menu items and tables")
    parser.add_argument("--reset", action="store_true", help="Drop all data first")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(reset=args.reset))
