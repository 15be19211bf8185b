"""
Order endpoints.

Placing an order is public (customers order from a table), and so is
fetching one order by id, which is how a customer follows their own order.
Listing is scoped to one restaurant and limited to its admin and staff,
since it exposes every customer's contact details. Status changes and
deletes need that restaurant's admin.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from restro.api.deps import get_optional_principal, get_order_engine, get_principal
from restro.core.security import Principal, require_restaurant_member
from restro.models import OrderStatus
from restro.repositories import OrderFilter
from restro.schemas import ApiResponse, ErrorResponse, OrderResponse, OrderStatusUpdate
from restro.services.orders import OrderLifecycleEngine

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)


@router.get("", response_model=ApiResponse[list[OrderResponse]])
async def list_orders(
    restaurant_id: str = Query(..., alias="restaurantId", min_length=1),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    table_number: Optional[int] = Query(None, alias="tableNumber", ge=1),
    principal: Optional[Principal] = Depends(get_optional_principal),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
):
    require_restaurant_member(principal, restaurant_id)
    criteria = OrderFilter(restaurant_id=restaurant_id, status=order_status, table_number=table_number)
    orders = await engine.list_orders(criteria)
    return ApiResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(
    order_id: str,
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
):
    order = await engine.get_order(order_id, restaurant_id)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.post("", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: dict = Body(...),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
):
    # Validated by the engine so every invalid field is reported at once
    order = await engine.create_order(payload)
    return ApiResponse(message="Order placed successfully", data=OrderResponse.model_validate(order))


@router.put("/{order_id}", response_model=ApiResponse[OrderResponse])
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    principal: Principal = Depends(get_principal),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
):
    order = await engine.update_status(
        order_id,
        data.status,
        principal,
        expected_status=data.expected_status,
        payment_method=data.payment_method,
        override=data.override,
    )
    return ApiResponse(message="Order updated successfully", data=OrderResponse.model_validate(order))


@router.delete("/{order_id}", response_model=ApiResponse[None])
async def delete_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
):
    await engine.delete_order(order_id, principal)
    return ApiResponse(message="Order deleted successfully")
