"""
Core module initialization.
Exports configuration, logging utilities and domain exceptions.
"""

from restaurant_crm.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from restaurant_crm.core.exceptions import RestaurantError

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode", "RestaurantError"]
