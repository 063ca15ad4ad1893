"""API routers, mounted by orderflow.main."""

from orderflow.routes.customers import router as customers_router
from orderflow.routes.kitchen import router as kitchen_router
from orderflow.routes.orders import router as orders_router
from orderflow.routes.tables import router as tables_router

__all__ = ["customers_router", "kitchen_router", "orders_router", "tables_router"]
