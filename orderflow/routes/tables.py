"""
Table Management Endpoints

    GET    /api/tables              active tables (manager, chef, server)
    GET    /api/tables/placement    suggested number and grid cell
    GET    /api/tables/{id}
    POST   /api/tables              create (manager)
    PATCH  /api/tables/{id}         edit (manager)
    PATCH  /api/tables/{id}/status  occupancy (manager, server)
    DELETE /api/tables/{id}         soft delete (manager)
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.security import Caller, get_caller
from orderflow.database import get_db
from orderflow.schemas import (
    ErrorResponse,
    TableCreate,
    TablePlacementResponse,
    TableResponse,
    TableStatusUpdate,
    TableUpdate,
)
from orderflow.services.polling import PollingView, polled_response
from orderflow.services.table_registry import TableRegistry

router = APIRouter(
    prefix="/api/tables",
    tags=["Tables"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get(
    "",
    response_model=List[TableResponse],
    responses={304: {"description": "Not Modified"}},
    summary="List Tables",
)
async def list_tables(
    request: Request,
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> Response:
    tables = await TableRegistry(db).list_tables(caller, include_inactive=include_inactive)
    return polled_response(
        request,
        [TableResponse.model_validate(t) for t in tables],
        PollingView.TABLE_MAP,
    )


@router.get("/placement", response_model=TablePlacementResponse, summary="Suggest Table Placement")
async def suggest_placement(
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TablePlacementResponse:
    placement = await TableRegistry(db).suggest_placement(caller)
    x, y = placement.position if placement.position else (None, None)
    return TablePlacementResponse(
        table_number=placement.table_number,
        position_x=x,
        position_y=y,
        grid_width=placement.grid_width,
        grid_height=placement.grid_height,
        grid_full=placement.grid_full,
    )


@router.get("/{table_id}", response_model=TableResponse, responses={404: {"model": ErrorResponse}})
async def get_table(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TableResponse:
    table = await TableRegistry(db).get_table(table_id, caller)
    return TableResponse.model_validate(table)


@router.post(
    "",
    response_model=TableResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def create_table(
    body: TableCreate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TableResponse:
    table = await TableRegistry(db).create_table(body, caller)
    return TableResponse.model_validate(table)


@router.patch(
    "/{table_id}",
    response_model=TableResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_table(
    table_id: int,
    body: TableUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TableResponse:
    table = await TableRegistry(db).update_table(table_id, body, caller)
    return TableResponse.model_validate(table)


@router.patch(
    "/{table_id}/status",
    response_model=TableResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_table_status(
    table_id: int,
    body: TableStatusUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TableResponse:
    table = await TableRegistry(db).update_table_status(
        table_id, body.status, caller, customer_name=body.customer_name
    )
    return TableResponse.model_validate(table)


@router.delete("/{table_id}", status_code=204, responses={404: {"model": ErrorResponse}})
async def delete_table(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> Response:
    await TableRegistry(db).delete_table(table_id, caller)
    return Response(status_code=204)
