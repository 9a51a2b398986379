"""Configuration module for Screenguard."""

from screenguard.config.settings import (
    OrchestrationTuning,
    RescreeningTuning,
    ScreeningTuning,
    Settings,
    get_settings,
)
from screenguard.config.validation import (
    ValidationResult,
    ValidationSeverity,
    validate_configuration,
    validate_or_raise,
)

__all__ = [
    "Settings",
    "get_settings",
    "ScreeningTuning",
    "OrchestrationTuning",
    "RescreeningTuning",
    "ValidationResult",
    "ValidationSeverity",
    "validate_configuration",
    "validate_or_raise",
]
