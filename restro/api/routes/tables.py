"""Table endpoints. Creating a table assigns its QR target URL."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from restro.api.deps import get_catalog_service, get_principal
from restro.core.security import Principal
from restro.models import TableStatus
from restro.repositories import TableFilter
from restro.schemas import (
    ApiResponse,
    ErrorResponse,
    TableCreate,
    TableResponse,
    TableStatusUpdate,
)
from restro.services.catalog import CatalogService
from restro.services.qr import table_response

router = APIRouter(
    prefix="/tables",
    tags=["Tables"],
    responses={404: {"model": ErrorResponse}},
)


@router.get("", response_model=ApiResponse[list[TableResponse]])
async def list_tables(
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    table_status: Optional[TableStatus] = Query(None, alias="status"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    tables = await catalog.list_tables(TableFilter.for_tenant(restaurant_id, status=table_status))
    return ApiResponse(data=[table_response(t) for t in tables])


@router.get("/{restaurant_id}/{table_id}", response_model=ApiResponse[TableResponse])
async def get_table(
    restaurant_id: str,
    table_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    table = await catalog.get_table(restaurant_id, table_id)
    return ApiResponse(data=table_response(table))


@router.post("", response_model=ApiResponse[TableResponse], status_code=status.HTTP_201_CREATED)
async def create_table(
    data: TableCreate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    table = await catalog.create_table(data, principal)
    return ApiResponse(message="Table created successfully", data=table_response(table))


@router.put("/{restaurant_id}/{table_id}", response_model=ApiResponse[TableResponse])
async def update_table_status(
    restaurant_id: str,
    table_id: int,
    data: TableStatusUpdate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    table = await catalog.update_table_status(restaurant_id, table_id, data.status, principal)
    return ApiResponse(message="Table updated successfully", data=table_response(table))


@router.delete("/{restaurant_id}/{table_id}", response_model=ApiResponse[None])
async def delete_table(
    restaurant_id: str,
    table_id: int,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    await catalog.delete_table(restaurant_id, table_id, principal)
    return ApiResponse(message="Table deleted successfully")
