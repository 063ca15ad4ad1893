"""
Pydantic Schemas for Request/Response Validation

JSON on the wire is camelCase (``orderType``, ``tableNumber`` ...);
snake_case field names are accepted as well.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from orderflow.models import (
    OrderPriority,
    OrderStatus,
    OrderType,
    TableShape,
    TableStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ORDER REQUEST SCHEMAS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line in an order."""
    menu_item_id: int = Field(..., ge=1, examples=[3])
    quantity: int = Field(..., ge=1, examples=[2])
    price: int = Field(..., ge=0, description="Unit price in cents", examples=[500])
    special_instructions: Optional[str] = Field(None, max_length=500)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class OrderCreate(CamelModel):
    """Request schema for creating a new order."""
    order_type: OrderType = Field(..., examples=["dine_in"])
    customer_name: str = Field(..., min_length=1, max_length=100, examples=["Ana Lopez"])
    customer_phone: Optional[str] = Field(None, max_length=30)
    table_number: Optional[int] = Field(None, ge=1, examples=[4])
    total_amount: int = Field(..., ge=0, description="Order total in cents", examples=[1350])
    special_instructions: Optional[str] = Field(None, max_length=500)
    order_items: List[OrderItemCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_table_for_order_type(self) -> "OrderCreate":
        if self.order_type == OrderType.DINE_IN and self.table_number is None:
            raise ValueError("Table number is required for dine-in orders")
        if self.order_type == OrderType.TAKEAWAY:
            self.table_number = None
        return self

    @property
    def items_total(self) -> int:
        return sum(item.line_total for item in self.order_items)


class OrderStatusUpdate(CamelModel):
    # Checked against the enum by the state machine to report valid values
    status: Optional[str] = None


class OrderPriorityUpdate(CamelModel):
    priority: Optional[str] = None


class EstimatedTimeUpdate(CamelModel):
    """Either an absolute timestamp or a number of minutes from now."""
    estimated_ready_time: Optional[datetime] = None
    minutes_from_now: Optional[int] = Field(None, ge=0, le=24 * 60)

    @model_validator(mode="after")
    def check_one_given(self) -> "EstimatedTimeUpdate":
        if self.estimated_ready_time is None and self.minutes_from_now is None:
            raise ValueError("Estimated ready time is required")
        return self


# =============================================================================
# ORDER RESPONSE SCHEMAS
# =============================================================================

class MenuItemSummary(CamelModel):
    """Live menu fields joined onto an order line."""
    id: int
    name: str
    category: str
    image_url: str
    price: int


class OrderItemResponse(CamelModel):
    id: int
    order_id: int
    menu_item_id: int
    quantity: int
    price: int
    special_instructions: Optional[str] = None
    menu_item: Optional[MenuItemSummary] = None


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: int
    order_type: OrderType
    status: OrderStatus
    priority: OrderPriority
    table_number: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    total_amount: int
    special_instructions: Optional[str] = None
    created_at: datetime
    estimated_ready_time: Optional[datetime] = None
    items: List[OrderItemResponse] = []


class OrderSummaryResponse(CamelModel):
    """Order without its lines, returned by the PATCH endpoints."""
    id: int
    order_type: OrderType
    status: OrderStatus
    priority: OrderPriority
    table_number: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    total_amount: int
    special_instructions: Optional[str] = None
    created_at: datetime
    estimated_ready_time: Optional[datetime] = None


class ScheduledOrderResponse(OrderResponse):
    """Kitchen queue entry with derived, never-stored fields."""
    is_overdue: bool
    next_status: Optional[OrderStatus] = None


class KitchenQueueResponse(CamelModel):
    sort: str
    generated_at: datetime
    overdue_count: int
    orders: List[ScheduledOrderResponse]


class HistorySummaryResponse(CamelModel):
    range: str
    total_orders: int
    total_revenue: int
    average_order_value: float
    completed_orders: int
    cancelled_orders: int


# =============================================================================
# TABLE SCHEMAS
# =============================================================================

class TableCreate(CamelModel):
    table_number: int = Field(..., ge=1, examples=[4])
    capacity: int = Field(..., ge=1, le=20, examples=[4])
    status: TableStatus = TableStatus.AVAILABLE
    shape: TableShape = Field(..., examples=["square"])
    position_x: int = Field(..., ge=0)
    position_y: int = Field(..., ge=0)
    width: int = Field(1, ge=1)
    height: int = Field(1, ge=1)
    customer_name: Optional[str] = Field(None, max_length=100)


class TableUpdate(CamelModel):
    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1, le=20)
    status: Optional[TableStatus] = None
    shape: Optional[TableShape] = None
    position_x: Optional[int] = Field(None, ge=0)
    position_y: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    customer_name: Optional[str] = Field(None, max_length=100)


class TableStatusUpdate(CamelModel):
    status: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)


class TableResponse(CamelModel):
    id: int
    table_number: int
    capacity: int
    status: TableStatus
    shape: TableShape
    position_x: int
    position_y: int
    width: int
    height: int
    is_active: bool
    customer_name: Optional[str] = None


class TablePlacementResponse(CamelModel):
    """Suggested defaults for the next table; advisory only."""
    table_number: int
    position_x: Optional[int] = None
    position_y: Optional[int] = None
    grid_width: int
    grid_height: int
    grid_full: bool


# =============================================================================
# CUSTOMER SCHEMAS
# =============================================================================

class CustomerCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    table_number: int = Field(..., ge=1)


class CustomerResponse(CamelModel):
    id: int
    name: str
    table_number: int
    last_visit: datetime


# =============================================================================
# SERVICE SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    code: str
    details: Optional[Any] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime
