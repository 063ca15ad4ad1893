"""
                        Services Module

Business logic of the order lifecycle. Every service takes an
AsyncSession and, where an operation is role-gated, the caller.

Services:
    - order_store: atomic order creation and retrieval
    - order_state: status transitions, priority, estimated ready time
    - scheduler: kitchen work queue and overdue detection
    - table_registry: tables, occupancy and placement suggestions
    - customers: returning-customer profiles
    - polling: re-fetch contract for polling clients
    - history: history windows, summaries and ledger export
    - excel_manager: file-locked Excel ledger
"""

from orderflow.services.customers import CustomerDirectory
from orderflow.services.order_state import OrderStateMachine
from orderflow.services.order_store import OrderStore
from orderflow.services.scheduler import FulfillmentScheduler, SortMode
from orderflow.services.table_registry import TableRegistry

__all__ = [
    "CustomerDirectory",
    "FulfillmentScheduler",
    "OrderStateMachine",
    "OrderStore",
    "SortMode",
    "TableRegistry",
]
