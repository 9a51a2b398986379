"""Custom exceptions for Screenguard."""


class ScreenguardError(Exception):
    """Base exception for all Screenguard errors."""

    pass


class ConfigurationError(ScreenguardError):
    """Error in configuration or settings."""

    pass
