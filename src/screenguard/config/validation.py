"""Configuration validation for startup checks.

Validates that screening tuning is coherent before any subject is
screened. Threshold and boost settings are compliance-relevant, so
inconsistent values are reported rather than silently clamped.

Usage:
    from screenguard.config.validation import validate_or_raise

    # During startup
    validate_or_raise()
"""

import logging
from dataclasses import dataclass
from enum import Enum

from screenguard.config.settings import Settings, get_settings
from screenguard.utils.exceptions import ConfigurationError

logger = logging.getLogger("screenguard.config")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, screening cannot start
    WARNING = "warning"  # Screening can run but results may surprise


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate screening configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_screening(settings))
    results.extend(_validate_rescreening(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in results:
        logger.warning(str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_screening(settings: Settings) -> list[ValidationResult]:
    """Validate match thresholds and boosts."""
    results: list[ValidationResult] = []
    tuning = settings.screening

    if not (tuning.low_threshold <= tuning.medium_threshold <= tuning.high_threshold):
        results.append(
            ValidationResult(
                field="SCREENING__*_THRESHOLD",
                severity=ValidationSeverity.ERROR,
                message=(
                    f"Thresholds out of order: low={tuning.low_threshold}, "
                    f"medium={tuning.medium_threshold}, high={tuning.high_threshold}"
                ),
                suggestion="Set low <= medium <= high",
            )
        )

    if tuning.high_threshold >= 100.0:
        results.append(
            ValidationResult(
                field="SCREENING__HIGH_THRESHOLD",
                severity=ValidationSeverity.ERROR,
                message="HIGH threshold must stay below 100, which is reserved for EXACT",
            )
        )

    if tuning.low_threshold < 30.0:
        results.append(
            ValidationResult(
                field="SCREENING__LOW_THRESHOLD",
                severity=ValidationSeverity.WARNING,
                message=f"LOW threshold {tuning.low_threshold} will report many false positives",
            )
        )

    if tuning.phonetic_boost + tuning.token_boost > 0.25:
        results.append(
            ValidationResult(
                field="SCREENING__PHONETIC_BOOST",
                severity=ValidationSeverity.WARNING,
                message="Combined boosts above 0.25 can lift dissimilar names into HIGH",
                suggestion="Keep phonetic_boost + token_boost at or below 0.25",
            )
        )

    return results


def _validate_rescreening(settings: Settings) -> list[ValidationResult]:
    """Validate retry and lease settings."""
    results: list[ValidationResult] = []
    tuning = settings.rescreening

    if tuning.retry_base_delay_seconds > tuning.retry_max_delay_seconds:
        results.append(
            ValidationResult(
                field="RESCREENING__RETRY_BASE_DELAY_SECONDS",
                severity=ValidationSeverity.ERROR,
                message="Retry base delay exceeds the maximum retry delay",
            )
        )

    # Claims must outlive a stalled repository call
    if tuning.execution_lease_seconds <= settings.orchestration.repository_timeout_seconds:
        results.append(
            ValidationResult(
                field="RESCREENING__EXECUTION_LEASE_SECONDS",
                severity=ValidationSeverity.ERROR,
                message="Execution lease must be longer than the repository timeout",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.environment == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="LOG_LEVEL",
                severity=ValidationSeverity.WARNING,
                message="DEBUG logging in production logs every repository call",
                suggestion="Set SCREENGUARD_LOG_LEVEL=INFO",
            )
        )

    return results
