"""
Typed query filters.

Each filter enumerates the legal fields for one collection. A filter with
no ``restaurant_id`` is only built through ``all_tenants()`` so that an
unscoped listing is always a deliberate choice.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from restro.models import MenuCategory, OrderStatus, TableStatus


@dataclass(frozen=True)
class TenantFilter:
    restaurant_id: Optional[str] = None
    unscoped: bool = field(default=False, repr=False)

    def __post_init__(self):
        if self.restaurant_id is None and not self.unscoped:
            raise ValueError(
                f"{type(self).__name__} needs a restaurant_id; "
                f"use {type(self).__name__}.all_tenants() for an unscoped listing"
            )

    @classmethod
    def all_tenants(cls, **criteria: Any):
        return cls(restaurant_id=None, unscoped=True, **criteria)

    @classmethod
    def for_tenant(cls, restaurant_id: Optional[str], **criteria: Any):
        """Scoped when ``restaurant_id`` is given, otherwise all tenants."""
        if restaurant_id:
            return cls(restaurant_id=restaurant_id, **criteria)
        return cls.all_tenants(**criteria)


@dataclass(frozen=True)
class MenuItemFilter(TenantFilter):
    category: Optional[MenuCategory] = None
    is_available: Optional[bool] = None


@dataclass(frozen=True)
class TableFilter(TenantFilter):
    status: Optional[TableStatus] = None


@dataclass(frozen=True)
class OrderFilter(TenantFilter):
    status: Optional[OrderStatus] = None
    table_number: Optional[int] = None
    placed_from: Optional[datetime] = None
    placed_to: Optional[datetime] = None


@dataclass(frozen=True)
class RestaurantFilter:
    id: Optional[str] = None
    is_active: Optional[bool] = None
