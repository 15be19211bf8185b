"""API routers."""

from restro.api.routes import auth, menu, orders, realtime, reports, restaurants, tables

__all__ = ["auth", "menu", "orders", "realtime", "reports", "restaurants", "tables"]
