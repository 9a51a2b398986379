"""Sanctions and PEP screening.

This module provides screening of identity records against sanctions
watchlists and politically exposed person registries:
- Name normalization and compound fuzzy similarity scoring
- Match strength classification (EXACT / HIGH / MEDIUM / LOW / NONE)
- PEP risk assessment with former-PEP decay and EDD requirements
- Single and batch screening with block / review / clear dispositions
- Risk-tiered rescreening schedules with retry and manual attention

Example:
    from screenguard.sanctions import (
        InMemoryWatchlistRepository,
        ScreeningSubject,
        create_screening_orchestrator,
    )

    orchestrator = create_screening_orchestrator(InMemoryWatchlistRepository())
    result = await orchestrator.screen(
        ScreeningSubject(subject_id="C-1001", full_name="John Smith"),
    )

    # Rescreen on a cadence suited to the result
    from screenguard.sanctions import InMemorySubjectSource, create_rescreening_scheduler

    scheduler = create_rescreening_scheduler(orchestrator, InMemorySubjectSource())
    await scheduler.schedule_screening(
        result.subject_id,
        orchestrator.recommended_frequency(result),
    )
"""

from .classifier import MatchClassifier, create_match_classifier
from .events import (
    InMemoryEventSink,
    NullEventSink,
    ScreeningEvent,
    ScreeningEventSink,
    ScreeningEventType,
)
from .matcher import SimilarityScorer, create_similarity_scorer
from .normalizer import NameNormalizer, create_name_normalizer
from .orchestrator import OrchestratorConfig, ScreeningOrchestrator, create_screening_orchestrator
from .pep import PepRiskAssessor, create_pep_risk_assessor
from .repository import (
    InMemorySubjectSource,
    InMemoryWatchlistRepository,
    SubjectSource,
    WatchlistRepository,
)
from .scheduler import (
    InMemoryScheduleStore,
    RescreeningConfig,
    RescreeningScheduler,
    ScheduleStore,
    create_rescreening_scheduler,
)
from .types import (
    BatchExecutionSummary,
    BulkScheduleSummary,
    ClassificationThresholds,
    CorroborationFlags,
    Disposition,
    EddRequirements,
    EntityType,
    InvalidSubjectError,
    ListUnavailableError,
    MatchingConfig,
    MatchStrength,
    NormalizedName,
    NormalizerConfig,
    PepCategory,
    PepMatch,
    PepPositionLevel,
    PepProfile,
    PepRiskAssessment,
    PepRiskConfig,
    RecommendedAction,
    RelatedPerson,
    RepositoryUnavailableError,
    RiskTier,
    SanctionsList,
    SanctionsMatch,
    ScheduleConflictError,
    ScheduleNotFoundError,
    ScheduleStatus,
    ScoreBreakdown,
    ScreeningError,
    ScreeningExecutionError,
    ScreeningFrequency,
    ScreeningOptions,
    ScreeningResult,
    ScreeningSchedule,
    ScreeningSubject,
    WatchlistCandidate,
)

__all__ = [
    # Types - Enums
    "SanctionsList",
    "EntityType",
    "RiskTier",
    "RecommendedAction",
    "MatchStrength",
    "Disposition",
    "PepPositionLevel",
    "PepCategory",
    "ScreeningFrequency",
    "ScheduleStatus",
    # Types - Configuration
    "NormalizerConfig",
    "MatchingConfig",
    "ClassificationThresholds",
    "PepRiskConfig",
    "OrchestratorConfig",
    "RescreeningConfig",
    # Types - Models
    "NormalizedName",
    "ScoreBreakdown",
    "CorroborationFlags",
    "ScreeningSubject",
    "WatchlistCandidate",
    "SanctionsMatch",
    "RelatedPerson",
    "PepProfile",
    "EddRequirements",
    "PepRiskAssessment",
    "PepMatch",
    "ScreeningOptions",
    "ScreeningResult",
    "ScreeningSchedule",
    "BatchExecutionSummary",
    "BulkScheduleSummary",
    # Types - Errors
    "ScreeningError",
    "InvalidSubjectError",
    "RepositoryUnavailableError",
    "ListUnavailableError",
    "ScreeningExecutionError",
    "ScheduleNotFoundError",
    "ScheduleConflictError",
    # Matching
    "NameNormalizer",
    "create_name_normalizer",
    "SimilarityScorer",
    "create_similarity_scorer",
    "MatchClassifier",
    "create_match_classifier",
    # PEP
    "PepRiskAssessor",
    "create_pep_risk_assessor",
    # Collaborators
    "WatchlistRepository",
    "SubjectSource",
    "InMemoryWatchlistRepository",
    "InMemorySubjectSource",
    "ScreeningEventSink",
    "ScreeningEvent",
    "ScreeningEventType",
    "InMemoryEventSink",
    "NullEventSink",
    # Orchestration
    "ScreeningOrchestrator",
    "create_screening_orchestrator",
    # Rescreening
    "ScheduleStore",
    "InMemoryScheduleStore",
    "RescreeningScheduler",
    "create_rescreening_scheduler",
]
