"""
SQLAlchemy Database Models

Orders with their line items, dining tables, returning-customer profiles,
and the slice of the menu catalogue that order lines reference.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from orderflow.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Persist the lowercase values rather than member names
    return [member.value for member in enum_cls]


class OrderType(str, enum.Enum):
    """Dine-in orders are tied to a table number; takeaway orders never are."""
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class TableShape(str, enum.Enum):
    SQUARE = "square"
    ROUND = "round"
    RECTANGULAR = "rectangular"


ACTIVE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)
HISTORICAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class MenuItem(Base):
    """
    Menu catalogue entry.

    Owned by the menu service; orders only reference it and read its
    display fields at retrieval time.
    """
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)  # cents
    category = Column(String(30), nullable=False)
    image_url = Column(String(500), nullable=False, default="")
    available = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name}>"


class Order(Base):
    """
    Main Order table.

    Created once together with its line items; afterwards only status,
    priority and estimated ready time change. Orders are never deleted.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # ORDER TYPE & LIFECYCLE
    # =========================================================================
    order_type = Column(
        Enum(OrderType, name="order_type", values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    priority = Column(
        Enum(OrderPriority, name="order_priority", values_callable=_enum_values),
        default=OrderPriority.MEDIUM,
        nullable=False,
    )

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    table_number = Column(Integer, nullable=True)  # dine-in only, soft reference
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    total_amount = Column(Integer, nullable=False)  # cents
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    estimated_ready_time = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="raise",
    )

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type.value} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """One line of an order: a menu item, a quantity and the price paid."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # unit price in cents at order time
    special_instructions = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items", lazy="raise")
    menu_item = relationship("MenuItem", lazy="raise")

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def __repr__(self):
        return f"<OrderItem #{self.id} - order {self.order_id} - {self.quantity}x menu {self.menu_item_id}>"


class DiningTable(Base):
    """
    Floor table.

    ``table_number`` is unique across every row, active or not: a
    soft-deleted table keeps its number reserved forever.
    """
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_number = Column(Integer, nullable=False, unique=True)
    capacity = Column(Integer, nullable=False)
    status = Column(
        Enum(TableStatus, name="table_status", values_callable=_enum_values),
        default=TableStatus.AVAILABLE,
        nullable=False,
    )
    shape = Column(
        Enum(TableShape, name="table_shape", values_callable=_enum_values),
        nullable=False,
    )

    # Grid placement on the floor map
    position_x = Column(Integer, nullable=False)
    position_y = Column(Integer, nullable=False)
    width = Column(Integer, nullable=False, default=1)
    height = Column(Integer, nullable=False, default=1)

    is_active = Column(Boolean, nullable=False, default=True)
    customer_name = Column(String(100), nullable=True)

    def __repr__(self):
        return f"<Table {self.table_number} - {self.status.value}{'' if self.is_active else ' (inactive)'}>"


class Customer(Base):
    """Returning-diner profile, looked up by name and table number."""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    table_number = Column(Integer, nullable=False)
    last_visit = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Customer #{self.id} - {self.name} @ table {self.table_number}>"
