"""Reporting endpoints for a restaurant's admin."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from restro.api.deps import get_order_engine, get_principal, get_report_service
from restro.core.security import Principal, require_restaurant_admin
from restro.repositories import OrderFilter
from restro.schemas import (
    ApiResponse,
    DashboardSummary,
    ErrorResponse,
    ExportResponse,
    OrderResponse,
    SalesReport,
)
from restro.services.orders import OrderLifecycleEngine
from restro.services.reports import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("/sales", response_model=ApiResponse[SalesReport])
async def sales_report(
    restaurant_id: str = Query(..., alias="restaurantId"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    principal: Principal = Depends(get_principal),
    reports: ReportService = Depends(get_report_service),
):
    require_restaurant_admin(principal, restaurant_id)
    return ApiResponse(data=await reports.sales_report(restaurant_id, start, end))


@router.get("/dashboard", response_model=ApiResponse[DashboardSummary])
async def dashboard(
    restaurant_id: str = Query(..., alias="restaurantId"),
    principal: Principal = Depends(get_principal),
    reports: ReportService = Depends(get_report_service),
):
    require_restaurant_admin(principal, restaurant_id)
    return ApiResponse(data=await reports.dashboard(restaurant_id))


@router.post("/export", response_model=ExportResponse, status_code=status.HTTP_202_ACCEPTED)
async def export_orders(
    restaurant_id: str = Query(..., alias="restaurantId"),
    principal: Principal = Depends(get_principal),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
) -> ExportResponse:
    """Queue an Excel export of the restaurant's orders."""
    from restro.tasks import export_orders_report

    require_restaurant_admin(principal, restaurant_id)
    orders = await engine.list_orders(OrderFilter(restaurant_id=restaurant_id))
    snapshot = [OrderResponse.model_validate(o).model_dump(mode="json", by_alias=True) for o in orders]

    task = export_orders_report.delay(restaurant_id, snapshot)
    logger.info(f"Queued export {task.id} for {restaurant_id} ({len(snapshot)} orders)")
    return ExportResponse(message="Export queued", task_id=task.id)
