"""Utility modules for Screenguard."""

from screenguard.utils.exceptions import ConfigurationError, ScreenguardError

__all__ = [
    "ScreenguardError",
    "ConfigurationError",
]
