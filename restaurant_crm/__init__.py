"""
                Restaurant CRM

Back-office REST backend for a restaurant: customers, menu, orders,
reservations, staff, inventory and analytics reports.

Author: Khalil_Bannouri
Version: 3.0.0
License: MIT
"""

__version__ = "3.0.0"
__author__ = "Khalil_Bannouri"
