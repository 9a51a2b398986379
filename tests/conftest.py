"""Pytest fixtures for Screenguard tests."""

from collections.abc import Generator
from datetime import UTC, date, datetime
from unittest.mock import patch

import pytest
import structlog

from screenguard.config.settings import Settings
from screenguard.sanctions import (
    InMemoryEventSink,
    InMemoryWatchlistRepository,
    SanctionsList,
    ScreeningOrchestrator,
    ScreeningSubject,
    WatchlistCandidate,
)

# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    # Reset structlog to default configuration after each test
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    # Re-apply minimal configuration for consistent behavior
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def mock_settings() -> Settings:
    """Create settings for testing."""
    return Settings(environment="test", log_level="DEBUG")


@pytest.fixture
def patch_settings(mock_settings: Settings) -> Generator[Settings, None, None]:
    """Patch get_settings to return test settings."""
    with patch("screenguard.core.logging.get_settings", return_value=mock_settings):
        yield mock_settings


# =============================================================================
# Screening Fixtures
# =============================================================================


@pytest.fixture
def as_of() -> datetime:
    """Fixed reference instant for time-dependent assertions."""
    return datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def sample_subject() -> ScreeningSubject:
    """Create a subject resembling a listed person."""
    return ScreeningSubject(
        subject_id="C-1001",
        full_name="Mohammad Al-Rahman",
        date_of_birth=date(1975, 3, 2),
        nationality="SY",
        document_numbers=["P1234567"],
    )


@pytest.fixture
def clean_subject() -> ScreeningSubject:
    """Create a subject that should not match any list entry."""
    return ScreeningSubject(subject_id="C-2002", full_name="John Smith")


@pytest.fixture
def sdn_candidate() -> WatchlistCandidate:
    """Create an OFAC SDN entry."""
    return WatchlistCandidate(
        candidate_id="SDN-1001",
        list_source=SanctionsList.OFAC_SDN,
        name="Mohammed Al Rahman",
        aliases=["Abu Rahman"],
        date_of_birth=date(1975, 3, 2),
        nationality=["SY"],
        programs=["SDGT"],
    )


@pytest.fixture
def unrelated_candidate() -> WatchlistCandidate:
    """Create a UN list entry unrelated to the sample subjects."""
    return WatchlistCandidate(
        candidate_id="UN-2002",
        list_source=SanctionsList.UN_CONSOLIDATED,
        name="Peter Johnson",
    )


@pytest.fixture
def repository(
    sdn_candidate: WatchlistCandidate,
    unrelated_candidate: WatchlistCandidate,
) -> InMemoryWatchlistRepository:
    """Create an in-memory repository with the sample entries."""
    return InMemoryWatchlistRepository(candidates=[sdn_candidate, unrelated_candidate])


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    """Create an in-memory event sink."""
    return InMemoryEventSink()


@pytest.fixture
def orchestrator(
    repository: InMemoryWatchlistRepository,
    event_sink: InMemoryEventSink,
) -> ScreeningOrchestrator:
    """Create an orchestrator over the sample repository."""
    return ScreeningOrchestrator(repository, event_sink=event_sink)
