"""Screening orchestrator for sanctions and PEP screening.

This module coordinates a screening end to end: subject validation, name
normalization, candidate lookup per watchlist, scoring and
classification, optional PEP screening, and aggregation into a single
result with a block / review / clear disposition.
"""

import asyncio
import time
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import TypeVar

from pydantic import BaseModel, Field

from screenguard.config import get_settings
from screenguard.core.logging import LogContext, get_logger, log_exception, log_external_call

from .classifier import MatchClassifier, create_match_classifier
from .events import NullEventSink, ScreeningEvent, ScreeningEventSink, ScreeningEventType
from .matcher import SimilarityScorer, create_similarity_scorer, score_to_percent
from .pep import PepRiskAssessor
from .repository import WatchlistRepository
from .types import (
    EntityType,
    InvalidSubjectError,
    ListUnavailableError,
    MatchStrength,
    NormalizedName,
    PepMatch,
    PepProfile,
    RepositoryUnavailableError,
    RiskTier,
    SanctionsList,
    SanctionsMatch,
    ScreeningError,
    ScreeningExecutionError,
    ScreeningFrequency,
    ScreeningOptions,
    ScreeningResult,
    ScreeningSubject,
    WatchlistCandidate,
)

logger = get_logger(__name__)

T = TypeVar("T")

MIN_NAME_LENGTH = 2


# =============================================================================
# Configuration
# =============================================================================


class OrchestratorConfig(BaseModel):
    """Configuration for the screening orchestrator."""

    default_lists: list[SanctionsList] = Field(
        default_factory=lambda: [
            SanctionsList.OFAC_SDN,
            SanctionsList.UN_CONSOLIDATED,
            SanctionsList.EU_CONSOLIDATED,
            SanctionsList.UK_HMT,
        ],
        description="Lists screened when the caller names none",
    )
    repository_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for each repository call"
    )
    max_concurrency: int = Field(
        default=8, ge=1, le=256, description="Subjects screened in parallel by a batch"
    )
    min_similarity_hint: float = Field(
        default=0.50, ge=0.0, le=1.0, description="Pre-filter hint passed to the repository"
    )
    emit_events: bool = Field(default=True, description="Emit screening events to the sink")


# =============================================================================
# Screening Orchestrator
# =============================================================================


class ScreeningOrchestrator:
    """Orchestrates sanctions and PEP screening of subjects.

    Example:
        orchestrator = ScreeningOrchestrator(repository)
        result = await orchestrator.screen(
            subject,
            [SanctionsList.OFAC_SDN, SanctionsList.UN_CONSOLIDATED],
            ScreeningOptions(include_pep=True),
        )

        if result.requires_blocking:
            ...
        elif result.requires_review:
            ...
    """

    def __init__(
        self,
        repository: WatchlistRepository,
        config: OrchestratorConfig | None = None,
        scorer: SimilarityScorer | None = None,
        classifier: MatchClassifier | None = None,
        pep_assessor: PepRiskAssessor | None = None,
        event_sink: ScreeningEventSink | None = None,
    ) -> None:
        """Initialize the screening orchestrator.

        Args:
            repository: Watchlist and PEP registry access.
            config: Orchestrator configuration.
            scorer: Optional similarity scorer instance.
            classifier: Optional match classifier instance.
            pep_assessor: Optional PEP risk assessor instance.
            event_sink: Optional sink for screening events.
        """
        self.config = config or OrchestratorConfig()
        self._repository = repository
        self._scorer = scorer or SimilarityScorer()
        self._classifier = classifier or MatchClassifier()
        self._pep_assessor = pep_assessor or PepRiskAssessor()
        self._event_sink: ScreeningEventSink = event_sink or NullEventSink()

    @property
    def scorer(self) -> SimilarityScorer:
        """Get the similarity scorer."""
        return self._scorer

    @property
    def classifier(self) -> MatchClassifier:
        """Get the match classifier."""
        return self._classifier

    @property
    def pep_assessor(self) -> PepRiskAssessor:
        """Get the PEP risk assessor."""
        return self._pep_assessor

    # =========================================================================
    # Single Subject
    # =========================================================================

    async def screen(
        self,
        subject: ScreeningSubject,
        lists: list[SanctionsList] | None = None,
        options: ScreeningOptions | None = None,
    ) -> ScreeningResult:
        """Screen a subject against watchlists and, optionally, PEP registries.

        Args:
            subject: Identity to screen.
            lists: Lists to search; the configured defaults when omitted.
            options: Per-call screening options.

        Returns:
            The aggregated screening result.

        Raises:
            InvalidSubjectError: If the subject lacks required fields.
            ListUnavailableError: If a list is unreachable and skipping
                unavailable lists was not requested.
            RepositoryUnavailableError: If a repository call fails or
                times out.
        """
        options = options or ScreeningOptions()
        self.validate_subject(subject)

        started = time.perf_counter()
        as_of = options.as_of or datetime.now(UTC)
        screened_at = as_of
        requested = list(dict.fromkeys(lists or self.config.default_lists))

        with LogContext(subject_id=subject.subject_id):
            logger.info(
                "screening_started",
                lists=[ls.value for ls in requested],
                include_pep=options.include_pep,
            )

            query_names = self._query_names(subject, options)
            hint = self._hint(options)
            timeout = self._timeout(options)

            matches: dict[tuple[SanctionsList, str], SanctionsMatch] = {}
            lists_screened: list[SanctionsList] = []
            unavailable: list[SanctionsList] = []

            for list_source in requested:
                try:
                    list_matches = await self._screen_list(
                        subject, query_names, list_source, hint, timeout, options, as_of
                    )
                except ListUnavailableError as e:
                    if not options.skip_unavailable_lists:
                        logger.warning("list_unavailable", list_source=list_source.value)
                        raise
                    logger.warning(
                        "list_unavailable_skipped",
                        list_source=list_source.value,
                        reason=e.reason,
                    )
                    unavailable.append(list_source)
                    continue

                for match in list_matches:
                    key = (match.list_source, match.candidate_id)
                    existing = matches.get(key)
                    if existing is None or match.similarity_score > existing.similarity_score:
                        matches[key] = match
                lists_screened.append(list_source)

            pep_matches: list[PepMatch] = []
            pep_tier = RiskTier.NONE
            if options.include_pep:
                pep_matches = await self._screen_pep(query_names, hint, timeout, options, as_of)
                pep_tier = self._pep_assessor.assess_overall(
                    [m.profile for m in pep_matches], as_of
                )

            result = self._aggregate(
                subject,
                sorted(matches.values(), key=lambda m: m.similarity_score, reverse=True),
                pep_matches,
                pep_tier,
                lists_screened,
                unavailable,
                options,
                screened_at,
                (time.perf_counter() - started) * 1000,
            )

            logger.info(
                "screening_completed",
                screening_id=str(result.screening_id),
                disposition=result.disposition.value,
                overall_risk=result.overall_risk.value,
                match_count=len(result.matches),
                pep_match_count=len(result.pep_matches),
                unavailable_lists=[ls.value for ls in unavailable],
                duration_ms=round(result.duration_ms, 2),
            )

        await self._emit_result_events(result)
        return result

    def validate_subject(self, subject: ScreeningSubject) -> None:
        """Validate the identity fields required for screening.

        Raises:
            InvalidSubjectError: If any required field is missing.
        """
        errors: list[str] = []
        subject_id = (subject.subject_id or "").strip()
        if not subject_id:
            errors.append("subject_id is required")
        if len((subject.full_name or "").strip()) < MIN_NAME_LENGTH:
            errors.append(f"full_name must have at least {MIN_NAME_LENGTH} characters")
        elif self._scorer.normalizer.normalize(subject.full_name).is_empty:
            errors.append("full_name has no comparable characters")
        if not isinstance(subject.entity_type, EntityType):
            errors.append(f"unknown entity_type: {subject.entity_type!r}")

        if errors:
            logger.warning("invalid_subject", subject_id=subject_id, errors=errors)
            raise InvalidSubjectError(subject_id, errors)

    def recommended_frequency(self, result: ScreeningResult) -> ScreeningFrequency:
        """Get the rescreening frequency suited to a result's overall risk."""
        return ScreeningFrequency.from_risk_tier(result.overall_risk)

    # =========================================================================
    # Batch
    # =========================================================================

    async def screen_batch(
        self,
        subjects: list[ScreeningSubject],
        lists: list[SanctionsList] | None = None,
        options: ScreeningOptions | None = None,
    ) -> dict[str, ScreeningResult | ScreeningError]:
        """Screen many subjects with bounded concurrency.

        Each subject is isolated: a failure is recorded against its
        subject_id and never affects the others. Subjects sharing an id
        are screened once.

        Args:
            subjects: Subjects to screen.
            lists: Lists to search for every subject.
            options: Options applied to every subject.

        Returns:
            Mapping of subject_id to its result or error.
        """
        unique: dict[str, ScreeningSubject] = {}
        for subject in subjects:
            unique.setdefault(subject.subject_id, subject)

        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def run(subject: ScreeningSubject) -> tuple[str, ScreeningResult | ScreeningError]:
            async with semaphore:
                try:
                    return subject.subject_id, await self.screen(subject, lists, options)
                except ScreeningError as e:
                    logger.warning(
                        "batch_item_failed",
                        subject_id=subject.subject_id,
                        code=e.code,
                        error=e.message,
                    )
                    return subject.subject_id, e
                except Exception as e:
                    log_exception(logger, e, subject_id=subject.subject_id)
                    return subject.subject_id, ScreeningExecutionError(subject.subject_id, str(e))

        outcomes = await asyncio.gather(*(run(s) for s in unique.values()))
        results = dict(outcomes)

        failed = sum(1 for r in results.values() if isinstance(r, ScreeningError))
        logger.info(
            "batch_screening_completed",
            total=len(results),
            succeeded=len(results) - failed,
            failed=failed,
        )
        return results

    # =========================================================================
    # Sanctions Lists
    # =========================================================================

    async def _screen_list(
        self,
        subject: ScreeningSubject,
        query_names: list[NormalizedName],
        list_source: SanctionsList,
        hint: float,
        timeout: float,
        options: ScreeningOptions,
        as_of: datetime,
    ) -> list[SanctionsMatch]:
        available = await self._call_repository(
            "is_list_available",
            self._repository.is_list_available(list_source),
            timeout,
            list_source,
        )
        if not available:
            raise ListUnavailableError(list_source, "list reported unavailable")

        candidates: dict[str, WatchlistCandidate] = {}
        for query in query_names:
            found = await self._call_repository(
                "find_candidates",
                self._repository.find_candidates(query, list_source, hint),
                timeout,
                list_source,
            )
            for candidate in found:
                candidates.setdefault(candidate.candidate_id, candidate)

        matches = []
        for candidate in candidates.values():
            match = self._score_candidate(subject, query_names, candidate, as_of)
            if match is not None and match.match_strength.at_least(options.min_report_strength):
                matches.append(match)
        return matches

    def _score_candidate(
        self,
        subject: ScreeningSubject,
        query_names: list[NormalizedName],
        candidate: WatchlistCandidate,
        as_of: datetime,
    ) -> SanctionsMatch | None:
        best = self._scorer.best_match(query_names, [candidate.name, *candidate.aliases])
        if best is None:
            return None
        signals, query, matched_name = best
        return self._classifier.create_match(
            subject,
            candidate,
            similarity_score=score_to_percent(signals.score),
            query_name=query.original,
            matched_name=matched_name,
            signals=signals,
            matched_at=as_of,
        )

    # =========================================================================
    # PEP
    # =========================================================================

    async def _screen_pep(
        self,
        query_names: list[NormalizedName],
        hint: float,
        timeout: float,
        options: ScreeningOptions,
        as_of: datetime,
    ) -> list[PepMatch]:
        profiles: dict[str, PepProfile] = {}
        for query in query_names:
            found = await self._call_repository(
                "find_pep_candidates",
                self._repository.find_pep_candidates(query, hint),
                timeout,
            )
            for profile in found:
                profiles.setdefault(profile.pep_id, profile)

        pep_matches: dict[str, PepMatch] = {}
        for profile in profiles.values():
            best = self._scorer.best_match(query_names, [profile.name])
            if best is None:
                continue
            similarity = score_to_percent(best[0].score)
            if not self._classifier.classify(similarity).at_least(options.min_report_strength):
                continue
            match = self._build_pep_match(profile, similarity, options, as_of)
            if match is not None:
                pep_matches[profile.pep_id] = match

        if options.include_relatives:
            for direct in list(pep_matches.values()):
                related = await self._call_repository(
                    "get_related_persons",
                    self._repository.get_related_persons(direct.profile.pep_id),
                    timeout,
                )
                for profile in related:
                    existing = pep_matches.get(profile.pep_id)
                    if existing is not None and existing.similarity_score >= direct.similarity_score:
                        continue
                    match = self._build_pep_match(
                        profile,
                        direct.similarity_score,
                        options,
                        as_of,
                        related_to=direct.profile.pep_id,
                    )
                    if match is not None:
                        pep_matches[profile.pep_id] = match

        return sorted(
            pep_matches.values(),
            key=lambda m: (m.risk_tier.rank, m.similarity_score),
            reverse=True,
        )

    def _build_pep_match(
        self,
        profile: PepProfile,
        similarity: float,
        options: ScreeningOptions,
        as_of: datetime,
        related_to: str | None = None,
    ) -> PepMatch | None:
        assessment = self._pep_assessor.assess(profile, as_of)
        if assessment.is_former and not options.include_former_peps:
            return None
        if not self._pep_assessor.meets_min_tier(assessment, options.min_pep_tier):
            return None
        return PepMatch(
            profile=profile,
            similarity_score=similarity,
            assessment=assessment,
            related_to=related_to,
        )

    # =========================================================================
    # Aggregation
    # =========================================================================

    def _aggregate(
        self,
        subject: ScreeningSubject,
        matches: list[SanctionsMatch],
        pep_matches: list[PepMatch],
        pep_tier: RiskTier,
        lists_screened: list[SanctionsList],
        unavailable: list[SanctionsList],
        options: ScreeningOptions,
        screened_at: datetime,
        duration_ms: float,
    ) -> ScreeningResult:
        overall_risk = RiskTier.highest([m.match_strength.risk_tier for m in matches] + [pep_tier])

        requires_blocking = any(m.match_strength.requires_blocking for m in matches)
        requires_review = (
            any(m.match_strength.requires_review for m in matches)
            or (pep_tier.rank >= RiskTier.HIGH.rank and not options.edd_completed)
            # An incomplete screening is never cleared
            or bool(unavailable)
        )

        return ScreeningResult(
            subject_id=subject.subject_id,
            subject_name=subject.full_name,
            lists_screened=lists_screened,
            unavailable_lists=unavailable,
            matches=matches,
            pep_matches=pep_matches,
            overall_risk=overall_risk,
            requires_blocking=requires_blocking,
            requires_review=requires_review,
            screened_at=screened_at,
            duration_ms=duration_ms,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _query_names(
        self, subject: ScreeningSubject, options: ScreeningOptions
    ) -> list[NormalizedName]:
        names = [subject.full_name]
        if options.include_aliases:
            names.extend(subject.aliases)

        normalized: dict[str, NormalizedName] = {}
        for name in names:
            result = self._scorer.normalizer.normalize(name)
            if not result.is_empty:
                normalized.setdefault(result.text, result)
        return list(normalized.values())

    def _hint(self, options: ScreeningOptions) -> float:
        if options.min_similarity_hint is not None:
            return options.min_similarity_hint
        return self.config.min_similarity_hint

    def _timeout(self, options: ScreeningOptions) -> float:
        if options.repository_timeout_seconds is not None:
            return options.repository_timeout_seconds
        return self.config.repository_timeout_seconds

    async def _call_repository(
        self,
        operation: str,
        call: Awaitable[T],
        timeout: float,
        list_source: SanctionsList | None = None,
    ) -> T:
        """Await a repository call with a timeout, mapping failures to screening errors."""
        started = time.perf_counter()
        list_value = list_source.value if list_source else None
        try:
            result = await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            log_external_call(
                logger,
                "watchlist_repository",
                operation,
                (time.perf_counter() - started) * 1000,
                success=False,
                list_source=list_value,
                error="timeout",
            )
            raise RepositoryUnavailableError(
                operation, f"timed out after {timeout}s", list_source
            ) from e
        except ScreeningError:
            raise
        except Exception as e:
            log_external_call(
                logger,
                "watchlist_repository",
                operation,
                (time.perf_counter() - started) * 1000,
                success=False,
                list_source=list_value,
                error=str(e),
            )
            raise RepositoryUnavailableError(
                operation, str(e) or type(e).__name__, list_source
            ) from e

        log_external_call(
            logger,
            "watchlist_repository",
            operation,
            (time.perf_counter() - started) * 1000,
            success=True,
            list_source=list_value,
        )
        return result

    async def _emit_result_events(self, result: ScreeningResult) -> None:
        if not self.config.emit_events:
            return

        await self._emit(
            ScreeningEvent(
                event_type=ScreeningEventType.SUBJECT_SCREENED,
                subject_id=result.subject_id,
                payload={
                    "screening_id": str(result.screening_id),
                    "disposition": result.disposition.value,
                    "overall_risk": result.overall_risk.value,
                    "match_count": len(result.matches),
                    "pep_match_count": len(result.pep_matches),
                },
            )
        )

        for match in result.get_matches_at_or_above(MatchStrength.HIGH):
            await self._emit(
                ScreeningEvent(
                    event_type=ScreeningEventType.HIGH_RISK_MATCH,
                    subject_id=result.subject_id,
                    payload={
                        "screening_id": str(result.screening_id),
                        "match_id": str(match.match_id),
                        "list_source": match.list_source.value,
                        "candidate_id": match.candidate_id,
                        "match_strength": match.match_strength.value,
                        "similarity_score": match.similarity_score,
                        "recommended_action": match.recommended_action.value,
                    },
                )
            )

    async def _emit(self, event: ScreeningEvent) -> None:
        try:
            await self._event_sink.emit(event)
        except Exception as e:
            logger.warning(
                "event_emit_failed",
                event_type=event.event_type.value,
                subject_id=event.subject_id,
                error=str(e),
            )


# =============================================================================
# Factory Functions
# =============================================================================


def create_screening_orchestrator(
    repository: WatchlistRepository,
    config: OrchestratorConfig | None = None,
    event_sink: ScreeningEventSink | None = None,
    scorer: SimilarityScorer | None = None,
    classifier: MatchClassifier | None = None,
    pep_assessor: PepRiskAssessor | None = None,
) -> ScreeningOrchestrator:
    """Create a screening orchestrator configured from settings.

    Args:
        repository: Watchlist and PEP registry access.
        config: Optional orchestrator configuration.
        event_sink: Optional sink for screening events.
        scorer: Optional similarity scorer; built from settings when omitted.
        classifier: Optional match classifier; built from settings when omitted.
        pep_assessor: Optional PEP risk assessor.

    Returns:
        Configured ScreeningOrchestrator instance.
    """
    if config is None:
        tuning = get_settings().orchestration
        config = OrchestratorConfig(
            repository_timeout_seconds=tuning.repository_timeout_seconds,
            max_concurrency=tuning.max_concurrent_screenings,
            min_similarity_hint=tuning.min_similarity_hint,
        )

    return ScreeningOrchestrator(
        repository,
        config=config,
        scorer=scorer or create_similarity_scorer(),
        classifier=classifier or create_match_classifier(),
        pep_assessor=pep_assessor,
        event_sink=event_sink,
    )
