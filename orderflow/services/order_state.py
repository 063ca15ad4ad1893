"""
Order State Machine

Status flow:

    pending -> confirmed -> preparing -> ready -> completed
       \\           \\            \\          \\
        +-----------+------------+----------+--> cancelled

``completed`` and ``cancelled`` are terminal.

How hard this table is enforced depends on the configured
TransitionPolicy. Under PERMISSIVE (the default) any of the six statuses
may be written by an authorised caller, so skipping ahead or moving back
is accepted and only logged. Under STRICT anything off the table is
rejected with InvalidTransitionError.

Priority and estimated ready time are scheduling hints and are never
restricted by status.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.config import TransitionPolicy, get_settings
from orderflow.core.errors import (
    InvalidPriorityError,
    InvalidStatusError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from orderflow.core.security import Caller, Capability, authorize
from orderflow.models import (
    ACTIVE_STATUSES,
    HISTORICAL_STATUSES,
    Order,
    OrderPriority,
    OrderStatus,
)

logger = logging.getLogger(__name__)

# Kitchen progression used by the "advance" helper
STATUS_FLOW = ACTIVE_STATUSES

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def parse_status(value: Any) -> OrderStatus:
    """Coerce a raw request value to an OrderStatus or raise InvalidStatusError."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError(value, [s.value for s in OrderStatus])


def parse_priority(value: Any) -> OrderPriority:
    if isinstance(value, OrderPriority):
        return value
    try:
        return OrderPriority(value)
    except ValueError:
        raise InvalidPriorityError(value, [p.value for p in OrderPriority])


def is_terminal(status: OrderStatus) -> bool:
    return status in HISTORICAL_STATUSES


def is_canonical_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True when ``target`` is reachable from ``current`` in one step."""
    return target in ALLOWED_TRANSITIONS[current]


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """
    Next step in the kitchen flow, or None.

    There is no automatic step after ``ready``: completion is a separate,
    explicit action. Terminal statuses have no next step either.
    """
    if current not in STATUS_FLOW:
        return None
    index = STATUS_FLOW.index(current)
    if index == len(STATUS_FLOW) - 1:
        return None
    return STATUS_FLOW[index + 1]


def check_transition(
    current: OrderStatus,
    target: OrderStatus,
    policy: TransitionPolicy,
) -> bool:
    """
    Apply the transition policy.

    Returns:
        True if the change follows the canonical table, False if it was
        let through by the permissive policy.

    Raises:
        InvalidTransitionError: STRICT policy and the change is off-table
    """
    if current == target or is_canonical_transition(current, target):
        return True

    if policy == TransitionPolicy.STRICT:
        raise InvalidTransitionError(
            current.value,
            target.value,
            sorted(s.value for s in ALLOWED_TRANSITIONS[current]),
        )
    return False


class OrderStateMachine:
    """
    Guarded mutations of an existing order.

    Every operation loads the order, checks the caller's capability,
    writes and commits. Concurrent writers are last-write-wins.
    """

    def __init__(
        self,
        db: AsyncSession,
        policy: Optional[TransitionPolicy] = None,
    ):
        self.db = db
        self.policy = policy or get_settings().status_transition_policy

    async def _load(self, order_id: int) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def transition(self, order_id: int, new_status: Any, caller: Caller) -> Order:
        """
        Move an order to ``new_status``.

        Raises:
            UnauthorizedError / ForbiddenError: caller lacks kitchen capability
            InvalidStatusError: value is not one of the six statuses
            OrderNotFoundError: no such order
            InvalidTransitionError: STRICT policy rejected the change
        """
        authorize(caller, Capability.ORDERS_UPDATE_STATUS)
        target = parse_status(new_status)
        order = await self._load(order_id)
        current = order.status

        if current == target:
            return order

        canonical = check_transition(current, target, self.policy)
        if not canonical:
            logger.warning(
                f"Order #{order_id}: off-path status change {current.value} -> {target.value} "
                f"accepted under {self.policy.value} policy by {caller}"
            )

        order.status = target
        await self.db.commit()

        logger.info(f"Order #{order_id} status {current.value} -> {target.value} by {caller}")
        return order

    async def set_priority(self, order_id: int, priority: Any, caller: Caller) -> Order:
        """Set the scheduling priority. Idempotent."""
        authorize(caller, Capability.ORDERS_SCHEDULE)
        level = parse_priority(priority)
        order = await self._load(order_id)

        if order.priority != level:
            order.priority = level
            await self.db.commit()
            logger.info(f"Order #{order_id} priority set to {level.value} by {caller}")

        return order

    async def set_estimated_ready_time(
        self,
        order_id: int,
        caller: Caller,
        when: Optional[datetime] = None,
        minutes_from_now: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """
        Record when staff expect the order to be ready.

        Either an absolute ``when`` or ``minutes_from_now``; with neither,
        the configured default preparation time is used. Naive timestamps
        are taken as UTC.
        """
        authorize(caller, Capability.ORDERS_SCHEDULE)

        if when is None:
            if minutes_from_now is None:
                minutes_from_now = get_settings().default_prep_minutes
            when = (now or datetime.now(timezone.utc)) + timedelta(minutes=minutes_from_now)
        elif when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)

        order = await self._load(order_id)
        order.estimated_ready_time = when
        await self.db.commit()

        logger.info(f"Order #{order_id} estimated ready at {when.isoformat()} by {caller}")
        return order
