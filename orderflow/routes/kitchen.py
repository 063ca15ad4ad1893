"""
Kitchen Display Endpoint

    GET /api/kitchen/queue?sort=priority|time

Polled every few seconds by the kitchen screens.
"""

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.security import Caller, get_caller
from orderflow.database import get_db
from orderflow.schemas import KitchenQueueResponse, OrderResponse, ScheduledOrderResponse
from orderflow.services.order_store import OrderStore
from orderflow.services.polling import PollingView, polled_response
from orderflow.services.scheduler import FulfillmentScheduler, SortMode

router = APIRouter(prefix="/api/kitchen", tags=["Kitchen"])


@router.get(
    "/queue",
    response_model=KitchenQueueResponse,
    responses={304: {"description": "Not Modified"}},
    summary="Kitchen Work Queue",
)
async def kitchen_queue(
    request: Request,
    sort: SortMode = Query(SortMode.PRIORITY),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> Response:
    """Active orders in kitchen order, each flagged overdue or not."""
    queue = await FulfillmentScheduler(OrderStore(db)).kitchen_queue(sort, caller)

    entries = [
        ScheduledOrderResponse(
            **OrderResponse.model_validate(entry.order).model_dump(),
            is_overdue=entry.is_overdue,
            next_status=entry.next_status,
        )
        for entry in queue.entries
    ]
    payload = KitchenQueueResponse(
        sort=queue.sort.value,
        generated_at=queue.generated_at,
        overdue_count=queue.overdue_count,
        orders=entries,
    )
    return polled_response(request, payload, PollingView.KITCHEN_DISPLAY, volatile=("generatedAt",))
