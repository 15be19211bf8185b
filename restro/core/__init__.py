"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from restro.core.config import get_settings, Settings, EnvironmentMode, ChangeFeedBackend

__all__ = ["get_settings", "Settings", "EnvironmentMode", "ChangeFeedBackend"]
