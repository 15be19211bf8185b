"""
                Restro - Restaurant Ordering Service

A multi-tenant backend for QR-code table ordering: customers browse a
restaurant's menu and place orders, staff manage menu items, tables and
order status, and connected dashboards receive live snapshots.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
