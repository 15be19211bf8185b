"""
Repositories

Data access for each collection, always scoped by restaurant where the
entity carries one.
"""

from restro.repositories.filters import (
    MenuItemFilter,
    OrderFilter,
    RestaurantFilter,
    TableFilter,
)
from restro.repositories.orders import OrderRepository
from restro.repositories.tenant import (
    MenuItemRepository,
    RestaurantRepository,
    TableRepository,
)
from restro.repositories.users import UserRepository

__all__ = [
    "MenuItemFilter",
    "OrderFilter",
    "RestaurantFilter",
    "TableFilter",
    "OrderRepository",
    "MenuItemRepository",
    "RestaurantRepository",
    "TableRepository",
    "UserRepository",
]
