"""
Order API Endpoints

    POST  /api/orders                       create (open to customers)
    GET   /api/orders?type=active|history   list (kitchen staff)
    GET   /api/orders/history               finished orders in a window
    GET   /api/orders/history/summary       totals for the history screen
    GET   /api/orders/{id}                  one order with its items
    PATCH /api/orders/{id}/status           state machine transition
    PATCH /api/orders/{id}/priority         scheduling priority
    PATCH /api/orders/{id}/estimated-time   estimated ready time
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.security import Caller, Capability, authorize, get_caller
from orderflow.database import get_db
from orderflow.schemas import (
    ErrorResponse,
    EstimatedTimeUpdate,
    HistorySummaryResponse,
    OrderCreate,
    OrderPriorityUpdate,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummaryResponse,
)
from orderflow.services.history import (
    HistoryRange,
    queue_history_export,
    summarize,
    window_start,
)
from orderflow.services.order_state import OrderStateMachine, parse_status
from orderflow.services.order_store import OrderStore
from orderflow.services.polling import PollingView, polled_response

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.post(
    "",
    response_model=OrderResponse,
    status_code=201,
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> OrderResponse:
    """
    Create an order with its line items in one transaction.

    Not idempotent: a client that timed out should look the order up
    before retrying.
    """
    logger.info(f"Creating {order_data.order_type.value} order for: {order_data.customer_name}")
    order = await OrderStore(db).create_order(order_data, caller)
    return OrderResponse.model_validate(order)


@router.get(
    "",
    response_model=List[OrderResponse],
    responses={304: {"description": "Not Modified"}},
    summary="List Orders",
)
async def list_orders(
    request: Request,
    type: str = Query("active", pattern="^(active|history)$"),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> Response:
    """Active orders by default, ``type=history`` for finished ones."""
    authorize(caller, Capability.ORDERS_READ)
    store = OrderStore(db)

    if status is not None:
        orders = await store.get_orders_by_status(parse_status(status))
        view = PollingView.ORDER_BOARD
    elif type == "history":
        orders = await store.get_completed_orders()
        view = PollingView.ORDER_HISTORY
    else:
        orders = await store.get_active_orders()
        view = PollingView.ORDER_BOARD

    return polled_response(request, [OrderResponse.model_validate(o) for o in orders], view)


@router.get(
    "/history",
    response_model=List[OrderResponse],
    responses={304: {"description": "Not Modified"}, 400: {"model": ErrorResponse}},
    summary="Order History",
)
async def order_history(
    request: Request,
    range: HistoryRange = Query(HistoryRange.ALL),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> Response:
    authorize(caller, Capability.ORDERS_READ)
    orders = await OrderStore(db).get_completed_orders(since=window_start(range))
    return polled_response(
        request,
        [OrderResponse.model_validate(o) for o in orders],
        PollingView.ORDER_HISTORY,
    )


@router.get(
    "/history/summary",
    response_model=HistorySummaryResponse,
    summary="Order History Summary",
)
async def order_history_summary(
    range: HistoryRange = Query(HistoryRange.LAST_7_DAYS),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> HistorySummaryResponse:
    authorize(caller, Capability.ORDERS_READ)
    orders = await OrderStore(db).get_completed_orders(since=window_start(range))
    summary = summarize(orders, range)
    return HistorySummaryResponse(
        range=summary.range.value,
        total_orders=summary.total_orders,
        total_revenue=summary.total_revenue,
        average_order_value=summary.average_order_value,
        completed_orders=summary.completed_orders,
        cancelled_orders=summary.cancelled_orders,
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> OrderResponse:
    """Get a specific order by ID."""
    authorize(caller, Capability.ORDERS_READ)
    order = await OrderStore(db).get_order(order_id)
    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/status",
    response_model=OrderSummaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> OrderSummaryResponse:
    order = await OrderStateMachine(db).transition(order_id, body.status, caller)
    # Broker publish blocks
    await run_in_threadpool(queue_history_export, order)
    return OrderSummaryResponse.model_validate(order)


@router.patch(
    "/{order_id}/priority",
    response_model=OrderSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_order_priority(
    order_id: int,
    body: OrderPriorityUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> OrderSummaryResponse:
    order = await OrderStateMachine(db).set_priority(order_id, body.priority, caller)
    return OrderSummaryResponse.model_validate(order)


@router.patch(
    "/{order_id}/estimated-time",
    response_model=OrderSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_estimated_time(
    order_id: int,
    body: EstimatedTimeUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> OrderSummaryResponse:
    order = await OrderStateMachine(db).set_estimated_ready_time(
        order_id,
        caller,
        when=body.estimated_ready_time,
        minutes_from_now=body.minutes_from_now,
    )
    return OrderSummaryResponse.model_validate(order)
