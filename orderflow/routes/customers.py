"""
Returning-Customer Endpoints

    POST /api/customers                          upsert by name + table
    GET  /api/customers/search?name&tableNumber  recognise a diner
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import ValidationError
from orderflow.core.security import Caller, Capability, authorize, get_caller
from orderflow.database import get_db
from orderflow.schemas import CustomerCreate, CustomerResponse, ErrorResponse
from orderflow.services.customers import CustomerDirectory

router = APIRouter(prefix="/api/customers", tags=["Customers"])


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=201,
    responses={200: {"model": CustomerResponse}, 400: {"model": ErrorResponse}},
)
async def register_customer(
    body: CustomerCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> CustomerResponse:
    """201 for a new profile, 200 when an existing one was refreshed."""
    authorize(caller, Capability.CUSTOMERS)
    customer, created = await CustomerDirectory(db).register(body.name, body.table_number)
    if not created:
        response.status_code = 200
    return CustomerResponse.model_validate(customer)


@router.get(
    "/search",
    response_model=CustomerResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def search_customer(
    name: Optional[str] = Query(None),
    table_number: Optional[int] = Query(None, alias="tableNumber", ge=1),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> CustomerResponse:
    authorize(caller, Capability.CUSTOMERS)
    if not name or not name.strip() or table_number is None:
        raise ValidationError("Name and table number are required")
    customer = await CustomerDirectory(db).recognize(name, table_number)
    return CustomerResponse.model_validate(customer)
