"""Restaurant (tenant) endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from restro.api.deps import get_catalog_service, get_principal
from restro.core.security import Principal
from restro.repositories import RestaurantFilter
from restro.schemas import (
    ApiResponse,
    ErrorResponse,
    RestaurantCreate,
    RestaurantResponse,
    RestaurantUpdate,
)
from restro.services.catalog import CatalogService

router = APIRouter(
    prefix="/restaurants",
    tags=["Restaurants"],
    responses={404: {"model": ErrorResponse}},
)


@router.get("", response_model=ApiResponse[list[RestaurantResponse]])
async def list_restaurants(
    restaurant_id: Optional[str] = Query(None, alias="id"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    restaurants = await catalog.list_restaurants(RestaurantFilter(id=restaurant_id, is_active=is_active))
    return ApiResponse(data=[RestaurantResponse.model_validate(r) for r in restaurants])


@router.get("/{restaurant_id}", response_model=ApiResponse[RestaurantResponse])
async def get_restaurant(
    restaurant_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
):
    restaurant = await catalog.get_restaurant(restaurant_id)
    return ApiResponse(data=RestaurantResponse.model_validate(restaurant))


@router.post("", response_model=ApiResponse[RestaurantResponse], status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    data: RestaurantCreate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    restaurant = await catalog.create_restaurant(data, principal)
    return ApiResponse(
        message="Restaurant created successfully",
        data=RestaurantResponse.model_validate(restaurant),
    )


@router.put("/{restaurant_id}", response_model=ApiResponse[RestaurantResponse])
async def update_restaurant(
    restaurant_id: str,
    data: RestaurantUpdate,
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    restaurant = await catalog.update_restaurant(restaurant_id, data, principal)
    return ApiResponse(
        message="Restaurant updated successfully",
        data=RestaurantResponse.model_validate(restaurant),
    )


@router.delete("/{restaurant_id}", response_model=ApiResponse[RestaurantResponse])
async def delete_restaurant(
    restaurant_id: str,
    hard: bool = Query(False, description="Remove the record instead of deactivating it"),
    principal: Principal = Depends(get_principal),
    catalog: CatalogService = Depends(get_catalog_service),
):
    restaurant = await catalog.delete_restaurant(restaurant_id, principal, hard=hard)
    if restaurant is None:
        return ApiResponse(message="Restaurant deleted successfully")
    return ApiResponse(
        message="Restaurant deactivated successfully",
        data=RestaurantResponse.model_validate(restaurant),
    )
