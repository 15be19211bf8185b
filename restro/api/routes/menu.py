"""Menu item endpoints. Reads are public; writes need the owning admin."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from restro.api.deps import get_catalog_service, get_principal
from restro.core.security import Principal
from restro.models import MenuCategory
from restro.repositories import MenuItemFilter
from restro.schemas import (
    ApiResponse,
    ErrorResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
)
from restro.services.catalog import CatalogService

router = APIRouter(
    prefix="/menu",
    tags=["Menu"],
    responses={404: {"model": ErrorResponse}},
)


@router.get("", response_model=ApiResponse[list[MenuItemResponse]])
async def list_menu(
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    category: Optional[MenuCategory] = Query(None),
    is_available: Optional[bool] = Query(None, alias="isAvailable"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    criteria = MenuItemFilter.for_tenant(restaurant_id, category=category, is_available=is_available)
    items = await catalog.list_menu(criteria)
    return ApiResponse(data=[MenuItemResponse.model_validate(i) for i in items])


@router.get("/{restaurant_id}/{item_id}", response_model=ApiResponse[MenuItemResponse])
async def get_menu_item(
    restaurant_id: str,
    item_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
):
    item = await catalog.get_menu_item(restaurant_id, item_id)
    return ApiResponse(data=MenuItemResponse.model_validate(item))


@router.post("", response_model=ApiResponse[MenuItemResponse], status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    data: MenuItemCreate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    item = await catalog.create_menu_item(data, principal)
    return ApiResponse(message="Menu item created successfully", data=MenuItemResponse.model_validate(item))


@router.put("/{restaurant_id}/{item_id}", response_model=ApiResponse[MenuItemResponse])
async def update_menu_item(
    restaurant_id: str,
    item_id: str,
    data: MenuItemUpdate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    item = await catalog.update_menu_item(restaurant_id, item_id, data, principal)
    return ApiResponse(message="Menu item updated successfully", data=MenuItemResponse.model_validate(item))


@router.delete("/{restaurant_id}/{item_id}", response_model=ApiResponse[None])
async def delete_menu_item(
    restaurant_id: str,
    item_id: str,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    await catalog.delete_menu_item(restaurant_id, item_id, principal)
    return ApiResponse(message="Menu item deleted successfully")
