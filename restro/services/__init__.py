"""
                        Services Module

Contains all business logic services.
Services with external providers have Mock (development) and Real
(production) implementations.

Services:
    - orders: Order lifecycle engine
    - catalog: Restaurants, menu items and tables
    - auth: Registration, sessions and password reset
    - changes: Change feed (memory, polling, Redis pub/sub)
    - notifications: SendGrid email
    - reports / excel_manager: Sales figures and Excel exports
"""

from restro.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
