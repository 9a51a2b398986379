"""Risk-tiered rescreening scheduler.

This module keeps a schedule per subject and periodically rescreens the
subjects that are due. Each due schedule is claimed with an optimistic
version compare-and-set before it is screened, so overlapping executor
runs process every due subject exactly once. Failures are retried with
bounded exponential backoff until the retry limit, after which the
schedule is parked for manual attention.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Protocol

from uuid_utils.compat import uuid7

from screenguard.config import get_settings
from screenguard.core.logging import LogContext, get_logger, log_exception

from .events import NullEventSink, ScreeningEvent, ScreeningEventSink, ScreeningEventType
from .orchestrator import ScreeningOrchestrator
from .repository import SubjectSource
from .types import (
    BatchExecutionSummary,
    BulkScheduleSummary,
    InvalidSubjectError,
    SanctionsList,
    ScheduleConflictError,
    ScheduleNotFoundError,
    ScheduleStatus,
    ScreeningError,
    ScreeningExecutionError,
    ScreeningFrequency,
    ScreeningOptions,
    ScreeningResult,
    ScreeningSchedule,
)

logger = get_logger(__name__)

MAX_DUE_QUERY_LIMIT = 1000


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Storage Protocol
# =============================================================================


class ScheduleStore(Protocol):
    """Protocol for rescreening schedule storage.

    Writes after the first insert go through ``compare_and_set``, which
    only succeeds while the stored version still equals the version the
    caller read, and stores the schedule with the version incremented.
    """

    async def get(self, subject_id: str) -> ScreeningSchedule | None:
        """Get the schedule of a subject."""
        ...

    async def insert(self, schedule: ScreeningSchedule) -> ScreeningSchedule:
        """Insert a new schedule.

        Raises:
            ScheduleConflictError: If the subject already has a schedule.
        """
        ...

    async def compare_and_set(
        self,
        schedule: ScreeningSchedule,
        expected_version: int,
    ) -> ScreeningSchedule:
        """Replace a schedule if its stored version is still expected_version.

        Raises:
            ScheduleConflictError: If the schedule is missing or changed.
        """
        ...

    async def list_due(
        self,
        as_of: datetime,
        limit: int | None = None,
        stale_claim_before: datetime | None = None,
    ) -> list[ScreeningSchedule]:
        """List schedules due at as_of, earliest first.

        SCHEDULED and FAILED schedules are due once next_due has passed.
        EXECUTING schedules claimed before stale_claim_before are due too.
        """
        ...

    async def list_all(self) -> list[ScreeningSchedule]:
        """List every schedule."""
        ...

    async def delete(self, subject_id: str) -> bool:
        """Delete a schedule, returning whether one existed."""
        ...


class InMemoryScheduleStore:
    """In-memory implementation of ScheduleStore for testing.

    Schedules are copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._schedules: dict[str, ScreeningSchedule] = {}
        self._lock = asyncio.Lock()

    async def get(self, subject_id: str) -> ScreeningSchedule | None:
        """Get the schedule of a subject."""
        schedule = self._schedules.get(subject_id)
        return schedule.model_copy(deep=True) if schedule else None

    async def insert(self, schedule: ScreeningSchedule) -> ScreeningSchedule:
        """Insert a new schedule."""
        async with self._lock:
            if schedule.subject_id in self._schedules:
                raise ScheduleConflictError(schedule.subject_id, schedule.version)
            stored = schedule.model_copy(deep=True)
            self._schedules[schedule.subject_id] = stored
            return stored.model_copy(deep=True)

    async def compare_and_set(
        self,
        schedule: ScreeningSchedule,
        expected_version: int,
    ) -> ScreeningSchedule:
        """Replace a schedule if its stored version is still expected_version."""
        async with self._lock:
            current = self._schedules.get(schedule.subject_id)
            if current is None or current.version != expected_version:
                raise ScheduleConflictError(schedule.subject_id, expected_version)
            stored = schedule.model_copy(update={"version": expected_version + 1}, deep=True)
            self._schedules[schedule.subject_id] = stored
            return stored.model_copy(deep=True)

    async def list_due(
        self,
        as_of: datetime,
        limit: int | None = None,
        stale_claim_before: datetime | None = None,
    ) -> list[ScreeningSchedule]:
        """List schedules due at as_of, earliest first."""
        due = []
        for schedule in self._schedules.values():
            if schedule.is_due(as_of):
                due.append(schedule)
            elif (
                stale_claim_before is not None
                and schedule.status == ScheduleStatus.EXECUTING
                and schedule.claimed_at is not None
                and schedule.claimed_at <= stale_claim_before
            ):
                due.append(schedule)

        due.sort(key=lambda s: s.next_due)
        if limit is not None:
            due = due[:limit]
        return [s.model_copy(deep=True) for s in due]

    async def list_all(self) -> list[ScreeningSchedule]:
        """List every schedule."""
        return [s.model_copy(deep=True) for s in self._schedules.values()]

    async def delete(self, subject_id: str) -> bool:
        """Delete a schedule."""
        async with self._lock:
            return self._schedules.pop(subject_id, None) is not None


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class RescreeningConfig:
    """Configuration for the rescreening scheduler.

    Attributes:
        default_lists: Lists screened for schedules that name none; empty
            means the orchestrator defaults.
        screening_options: Options passed to every rescreening.
        max_retries: Failed attempts retried before manual attention.
        retry_base_delay: Delay before the first retry, doubled per failure.
        retry_max_delay: Cap on the retry delay.
        execution_lease: How long a claim is honoured before another
            executor may take the schedule over.
        max_concurrent_executions: Subjects rescreened in parallel.
        max_update_attempts: Read-modify-write attempts for schedule edits.
    """

    default_lists: list[SanctionsList] = field(default_factory=list)
    screening_options: ScreeningOptions | None = None
    max_retries: int = 3
    retry_base_delay: timedelta = field(default_factory=lambda: timedelta(minutes=5))
    retry_max_delay: timedelta = field(default_factory=lambda: timedelta(days=1))
    execution_lease: timedelta = field(default_factory=lambda: timedelta(minutes=30))
    max_concurrent_executions: int = 8
    max_update_attempts: int = 3


class _Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    RETRY_SCHEDULED = "retry_scheduled"
    MANUAL_ATTENTION = "manual_attention"
    SKIPPED = "skipped"
    NOT_STARTED = "not_started"


# =============================================================================
# Rescreening Scheduler
# =============================================================================


class RescreeningScheduler:
    """Schedules and executes periodic rescreening of subjects.

    Example:
        scheduler = RescreeningScheduler(store, orchestrator, subjects)
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.MONTHLY)

        summary = await scheduler.execute_due()
        print(f"{summary.succeeded} rescreened, {summary.failed} failed")
    """

    def __init__(
        self,
        store: ScheduleStore,
        orchestrator: ScreeningOrchestrator,
        subject_source: SubjectSource,
        config: RescreeningConfig | None = None,
        event_sink: ScreeningEventSink | None = None,
    ) -> None:
        """Initialize the rescreening scheduler.

        Args:
            store: Storage backend for schedules.
            orchestrator: Orchestrator that performs each screening.
            subject_source: Loads subjects by identifier.
            config: Optional scheduler configuration.
            event_sink: Optional sink for schedule events.
        """
        self.config = config or RescreeningConfig()
        self.store = store
        self._orchestrator = orchestrator
        self._subject_source = subject_source
        self._event_sink: ScreeningEventSink = event_sink or NullEventSink()

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def schedule_screening(
        self,
        subject_id: str,
        frequency: ScreeningFrequency,
        *,
        as_of: datetime | None = None,
        lists: list[SanctionsList] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ScreeningSchedule:
        """Schedule periodic rescreening of a subject.

        An existing schedule for the subject is replaced.

        Args:
            subject_id: Subject to rescreen.
            frequency: Rescreening cadence.
            as_of: Scheduling instant; now when omitted.
            lists: Lists to screen; the configured defaults when omitted.
            metadata: Caller-supplied data kept on the schedule.

        Returns:
            The stored schedule, first due one interval after as_of.

        Raises:
            InvalidSubjectError: If subject_id is empty.
        """
        return await self._upsert(
            subject_id,
            frequency,
            next_due_offset=frequency.interval,
            as_of=as_of,
            lists=lists,
            metadata=metadata,
        )

    async def schedule_immediate_screening(
        self,
        subject_id: str,
        frequency: ScreeningFrequency = ScreeningFrequency.MONTHLY,
        *,
        as_of: datetime | None = None,
        lists: list[SanctionsList] | None = None,
    ) -> ScreeningSchedule:
        """Make a subject due now.

        An existing schedule keeps its frequency and history and only has
        next_due pulled forward; a schedule currently executing is left
        alone. A subject without a schedule gets one at ``frequency``.
        """
        as_of = as_of or _utcnow()
        existing = await self.store.get(subject_id)
        if existing is None:
            return await self._upsert(
                subject_id, frequency, next_due_offset=timedelta(0), as_of=as_of, lists=lists
            )
        if existing.status == ScheduleStatus.EXECUTING:
            return existing

        def make_due(current: ScreeningSchedule) -> dict[str, Any]:
            update: dict[str, Any] = {
                "status": ScheduleStatus.SCHEDULED,
                "next_due": max(as_of, current.last_executed_at or as_of),
            }
            if lists is not None:
                update["lists"] = list(lists)
            return update

        schedule = await self._update(subject_id, make_due)
        logger.info("immediate_screening_scheduled", subject_id=subject_id)
        return schedule

    async def bulk_schedule_screening(
        self,
        subject_ids: list[str],
        frequency: ScreeningFrequency,
        *,
        as_of: datetime | None = None,
        lists: list[SanctionsList] | None = None,
    ) -> BulkScheduleSummary:
        """Schedule many subjects, isolating failures per subject."""
        as_of = as_of or _utcnow()
        summary = BulkScheduleSummary(total=len(subject_ids))

        for subject_id in subject_ids:
            try:
                await self.schedule_screening(subject_id, frequency, as_of=as_of, lists=lists)
                summary.scheduled += 1
            except ScreeningError as e:
                summary.failed += 1
                summary.errors[subject_id] = e.message
                logger.warning("bulk_schedule_item_failed", subject_id=subject_id, error=e.message)

        logger.info(
            "bulk_screening_scheduled",
            total=summary.total,
            scheduled=summary.scheduled,
            failed=summary.failed,
        )
        return summary

    async def update_frequency(
        self,
        subject_id: str,
        new_frequency: ScreeningFrequency,
    ) -> ScreeningSchedule:
        """Change a subject's rescreening frequency.

        next_due is recomputed from the last execution, or from the
        scheduling instant when the subject has never been screened.

        Raises:
            ScheduleNotFoundError: If the subject has no schedule.
        """

        def change(current: ScreeningSchedule) -> dict[str, Any]:
            anchor = current.last_executed_at or current.scheduled_at
            return {"frequency": new_frequency, "next_due": anchor + new_frequency.interval}

        schedule = await self._update(subject_id, change)
        logger.info(
            "screening_frequency_updated",
            subject_id=subject_id,
            frequency=new_frequency.value,
            next_due=schedule.next_due.isoformat(),
        )
        return schedule

    async def cancel_scheduled_screening(self, subject_id: str) -> ScreeningSchedule:
        """Cancel a subject's schedule so it is never selected as due.

        Raises:
            ScheduleNotFoundError: If the subject has no schedule.
        """
        schedule = await self._update(
            subject_id,
            lambda _: {
                "status": ScheduleStatus.CANCELLED,
                "execution_id": None,
                "claimed_at": None,
            },
        )
        logger.info("scheduled_screening_cancelled", subject_id=subject_id)
        return schedule

    async def reset_manual_attention(
        self,
        subject_id: str,
        *,
        as_of: datetime | None = None,
    ) -> ScreeningSchedule:
        """Return a schedule parked for manual attention to the due queue.

        Schedules in any other status are returned unchanged.

        Raises:
            ScheduleNotFoundError: If the subject has no schedule.
        """
        as_of = as_of or _utcnow()
        current = await self.store.get(subject_id)
        if current is None:
            raise ScheduleNotFoundError(subject_id)
        if current.status != ScheduleStatus.MANUAL_ATTENTION:
            return current

        schedule = await self._update(
            subject_id,
            lambda s: {
                "status": ScheduleStatus.SCHEDULED,
                "consecutive_failures": 0,
                "last_error": None,
                "next_due": max(as_of, s.last_executed_at or as_of),
            },
        )
        logger.info("manual_attention_reset", subject_id=subject_id)
        return schedule

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute_due(
        self,
        as_of: datetime | None = None,
        *,
        limit: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchExecutionSummary:
        """Rescreen every subject due at as_of.

        Due schedules are claimed one by one; a schedule claimed by a
        concurrent run is skipped. Once cancel_event is set no further
        schedules are claimed, while screenings already running finish
        and commit.

        Args:
            as_of: Reference instant; also recorded as the execution time.
            limit: Maximum number of due schedules to process.
            cancel_event: Cooperative cancellation signal.

        Returns:
            Summary of the run. Per-subject failures are recorded in it
            and never raised.
        """
        as_of = as_of or _utcnow()
        started = time.perf_counter()

        due = await self.store.list_due(
            as_of,
            limit=limit,
            stale_claim_before=as_of - self.config.execution_lease,
        )
        summary = BatchExecutionSummary(as_of=as_of, total_due=len(due))

        logger.info("rescreening_batch_started", as_of=as_of.isoformat(), total_due=len(due))

        semaphore = asyncio.Semaphore(self.config.max_concurrent_executions)

        async def run(
            schedule: ScreeningSchedule,
        ) -> tuple[str, _Outcome, ScreeningResult | None, str | None]:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return schedule.subject_id, _Outcome.NOT_STARTED, None, None
                return await self._execute_one(schedule, as_of)

        outcomes = await asyncio.gather(*(run(s) for s in due))

        for subject_id, outcome, result, error in outcomes:
            if outcome == _Outcome.NOT_STARTED:
                summary.not_started += 1
                continue
            if outcome == _Outcome.SKIPPED:
                summary.skipped += 1
                continue

            summary.executed += 1
            if outcome == _Outcome.SUCCEEDED:
                summary.succeeded += 1
                if result is not None:
                    summary.results[subject_id] = result
                continue

            summary.failed += 1
            summary.errors[subject_id] = error or "unknown error"
            if outcome == _Outcome.RETRY_SCHEDULED:
                summary.retry_scheduled += 1
            else:
                summary.manual_attention += 1

        summary.cancelled = cancel_event is not None and cancel_event.is_set()
        summary.duration_seconds = time.perf_counter() - started

        logger.info(
            "rescreening_batch_completed",
            total_due=summary.total_due,
            executed=summary.executed,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            not_started=summary.not_started,
            cancelled=summary.cancelled,
            duration_seconds=round(summary.duration_seconds, 3),
        )
        return summary

    async def _execute_one(
        self,
        schedule: ScreeningSchedule,
        as_of: datetime,
    ) -> tuple[str, _Outcome, ScreeningResult | None, str | None]:
        subject_id = schedule.subject_id
        claimed = await self._claim(schedule, as_of)
        if claimed is None:
            return subject_id, _Outcome.SKIPPED, None, None

        result: ScreeningResult | None = None
        error: ScreeningError | None = None
        with LogContext(subject_id=subject_id, execution_id=str(claimed.execution_id)):
            try:
                result = await self._screen(claimed, as_of)
            except asyncio.CancelledError:
                await asyncio.shield(self._release(claimed, schedule))
                raise
            except ScreeningError as e:
                error = e
            except Exception as e:
                log_exception(logger, e, subject_id=subject_id)
                error = ScreeningExecutionError(subject_id, str(e))

            if error is not None:
                outcome = await self._record_failure(claimed, as_of, error)
            else:
                outcome = await self._record_success(claimed, as_of, result)

        # Another writer took the schedule over mid-run
        if outcome == _Outcome.SKIPPED:
            return subject_id, outcome, None, None
        if error is not None:
            return subject_id, outcome, None, error.message
        return subject_id, outcome, result, None

    async def _claim(
        self,
        schedule: ScreeningSchedule,
        as_of: datetime,
    ) -> ScreeningSchedule | None:
        claimed = schedule.model_copy(
            update={
                "status": ScheduleStatus.EXECUTING,
                "execution_id": uuid7(),
                "claimed_at": as_of,
            }
        )
        try:
            return await self.store.compare_and_set(claimed, expected_version=schedule.version)
        except ScheduleConflictError:
            logger.debug("schedule_claim_conflict", subject_id=schedule.subject_id)
            return None

    async def _screen(self, claimed: ScreeningSchedule, as_of: datetime) -> ScreeningResult:
        subject = await self._subject_source.get_subject(claimed.subject_id)
        if subject is None:
            raise InvalidSubjectError(claimed.subject_id, ["subject not found"])

        lists = claimed.lists or self.config.default_lists or None
        options = (self.config.screening_options or ScreeningOptions()).model_copy(
            update={"as_of": as_of}
        )
        return await self._orchestrator.screen(subject, lists, options)

    async def _record_success(
        self,
        claimed: ScreeningSchedule,
        as_of: datetime,
        result: ScreeningResult,
    ) -> _Outcome:
        def advance(current: ScreeningSchedule) -> dict[str, Any]:
            return {
                "status": ScheduleStatus.SCHEDULED,
                "last_executed_at": as_of,
                "last_succeeded_at": as_of,
                "next_due": as_of + current.frequency.interval,
                "consecutive_failures": 0,
                "execution_count": current.execution_count + 1,
                "last_error": None,
                "last_risk_tier": result.overall_risk,
                "execution_id": None,
                "claimed_at": None,
            }

        committed = await self._commit(claimed, advance)
        if committed is None:
            return _Outcome.SKIPPED

        logger.info(
            "rescreening_succeeded",
            overall_risk=result.overall_risk.value,
            next_due=committed.next_due.isoformat(),
        )
        await self._emit(
            ScreeningEvent(
                event_type=ScreeningEventType.SCHEDULE_ADVANCED,
                subject_id=committed.subject_id,
                payload={
                    "screening_id": str(result.screening_id),
                    "frequency": committed.frequency.value,
                    "next_due": committed.next_due.isoformat(),
                    "overall_risk": result.overall_risk.value,
                },
            )
        )
        return _Outcome.SUCCEEDED

    async def _record_failure(
        self,
        claimed: ScreeningSchedule,
        as_of: datetime,
        error: ScreeningError,
    ) -> _Outcome:
        failures = claimed.consecutive_failures + 1
        retry = error.retryable and failures <= self.config.max_retries

        def fail(current: ScreeningSchedule) -> dict[str, Any]:
            update: dict[str, Any] = {
                "last_executed_at": as_of,
                "consecutive_failures": failures,
                "execution_count": current.execution_count + 1,
                "last_error": error.message,
                "execution_id": None,
                "claimed_at": None,
            }
            if retry:
                update["status"] = ScheduleStatus.FAILED
                update["next_due"] = as_of + self.retry_delay(failures)
            else:
                update["status"] = ScheduleStatus.MANUAL_ATTENTION
                update["next_due"] = as_of
            return update

        committed = await self._commit(claimed, fail)
        if committed is None:
            return _Outcome.SKIPPED

        if retry:
            logger.warning(
                "rescreening_retry_scheduled",
                code=error.code,
                error=error.message,
                consecutive_failures=failures,
                next_due=committed.next_due.isoformat(),
            )
            return _Outcome.RETRY_SCHEDULED

        logger.error(
            "rescreening_manual_attention",
            code=error.code,
            error=error.message,
            consecutive_failures=failures,
            retryable=error.retryable,
        )
        await self._emit(
            ScreeningEvent(
                event_type=ScreeningEventType.SCHEDULE_FAILED,
                subject_id=committed.subject_id,
                payload={
                    "code": error.code,
                    "error": error.message,
                    "consecutive_failures": failures,
                },
            )
        )
        return _Outcome.MANUAL_ATTENTION

    async def _commit(
        self,
        claimed: ScreeningSchedule,
        changes: Callable[[ScreeningSchedule], dict[str, Any]],
    ) -> ScreeningSchedule | None:
        """Apply changes if the schedule is still held by this claim."""
        current = await self.store.get(claimed.subject_id)
        if (
            current is None
            or current.status != ScheduleStatus.EXECUTING
            or current.execution_id != claimed.execution_id
        ):
            logger.warning(
                "schedule_changed_during_execution",
                status=current.status.value if current else None,
            )
            return None

        try:
            return await self.store.compare_and_set(
                current.model_copy(update=changes(current)),
                expected_version=current.version,
            )
        except ScheduleConflictError:
            logger.warning("schedule_commit_conflict")
            return None

    async def _release(self, claimed: ScreeningSchedule, original: ScreeningSchedule) -> None:
        """Hand a claim back after the executor was cancelled mid-screening."""
        released = await self._commit(
            claimed,
            lambda _: {
                "status": original.status,
                "execution_id": original.execution_id,
                "claimed_at": original.claimed_at,
            },
        )
        logger.info("schedule_claim_released", released=released is not None)

    def retry_delay(self, consecutive_failures: int) -> timedelta:
        """Exponential backoff delay for the given failure count."""
        exponent = max(consecutive_failures - 1, 0)
        delay = self.config.retry_base_delay * (2**exponent)
        return min(delay, self.config.retry_max_delay)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_schedule(self, subject_id: str) -> ScreeningSchedule | None:
        """Get the schedule of a subject."""
        return await self.store.get(subject_id)

    async def get_next_screening_date(self, subject_id: str) -> datetime | None:
        """Get when a subject is next due (None when unscheduled or cancelled)."""
        schedule = await self.store.get(subject_id)
        if schedule is None or schedule.status == ScheduleStatus.CANCELLED:
            return None
        return schedule.next_due

    async def get_subjects_due(
        self,
        as_of: datetime | None = None,
        limit: int = 100,
    ) -> list[str]:
        """List subject ids due at as_of, earliest first.

        The limit is clamped to between 1 and 1000.
        """
        as_of = as_of or _utcnow()
        limit = max(1, min(limit, MAX_DUE_QUERY_LIMIT))
        due = await self.store.list_due(as_of, limit=limit)
        return [s.subject_id for s in due]

    async def get_execution_statistics(self, as_of: datetime | None = None) -> dict[str, Any]:
        """Summarize all schedules for operational dashboards."""
        as_of = as_of or _utcnow()
        schedules = await self.store.list_all()

        by_status = {status.value: 0 for status in ScheduleStatus}
        by_frequency = {frequency.value: 0 for frequency in ScreeningFrequency}
        for schedule in schedules:
            by_status[schedule.status.value] += 1
            by_frequency[schedule.frequency.value] += 1

        return {
            "total_schedules": len(schedules),
            "by_status": by_status,
            "by_frequency": by_frequency,
            "due_now": sum(1 for s in schedules if s.is_due(as_of)),
            "total_executions": sum(s.execution_count for s in schedules),
            "failing": sum(1 for s in schedules if s.consecutive_failures > 0),
            "as_of": as_of.isoformat(),
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _upsert(
        self,
        subject_id: str,
        frequency: ScreeningFrequency,
        *,
        next_due_offset: timedelta,
        as_of: datetime | None,
        lists: list[SanctionsList] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ScreeningSchedule:
        if not subject_id or not subject_id.strip():
            raise InvalidSubjectError(subject_id, ["subject_id is required"])

        as_of = as_of or _utcnow()
        schedule = ScreeningSchedule(
            subject_id=subject_id,
            frequency=frequency,
            next_due=as_of + next_due_offset,
            lists=list(lists or []),
            scheduled_at=as_of,
            metadata=dict(metadata or {}),
        )

        existing = await self.store.get(subject_id)
        if existing is None:
            stored = await self.store.insert(schedule)
        else:
            stored = await self.store.compare_and_set(
                schedule.model_copy(update={"version": existing.version}),
                expected_version=existing.version,
            )

        logger.info(
            "screening_scheduled",
            subject_id=subject_id,
            frequency=frequency.value,
            next_due=stored.next_due.isoformat(),
            replaced=existing is not None,
        )
        return stored

    async def _update(
        self,
        subject_id: str,
        changes: Callable[[ScreeningSchedule], dict[str, Any]],
    ) -> ScreeningSchedule:
        """Read-modify-write a schedule, retrying lost races."""
        version = -1
        for _ in range(self.config.max_update_attempts):
            current = await self.store.get(subject_id)
            if current is None:
                raise ScheduleNotFoundError(subject_id)
            version = current.version
            try:
                return await self.store.compare_and_set(
                    current.model_copy(update=changes(current)),
                    expected_version=current.version,
                )
            except ScheduleConflictError:
                logger.debug("schedule_update_conflict", subject_id=subject_id)

        raise ScheduleConflictError(subject_id, version)

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


def create_rescreening_scheduler(
    orchestrator: ScreeningOrchestrator,
    subject_source: SubjectSource,
    store: ScheduleStore | None = None,
    config: RescreeningConfig | None = None,
    event_sink: ScreeningEventSink | None = None,
) -> RescreeningScheduler:
    """Create a rescreening scheduler with default or provided components.

    Args:
        orchestrator: Orchestrator that performs each screening.
        subject_source: Loads subjects by identifier.
        store: Optional storage backend. Uses in-memory store if not provided.
        config: Optional scheduler configuration, built from settings if not provided.
        event_sink: Optional sink for schedule events.

    Returns:
        Configured RescreeningScheduler instance.
    """
    if config is None:
        tuning = get_settings().rescreening
        config = RescreeningConfig(
            max_retries=tuning.max_retries,
            retry_base_delay=timedelta(seconds=tuning.retry_base_delay_seconds),
            retry_max_delay=timedelta(seconds=tuning.retry_max_delay_seconds),
            execution_lease=timedelta(seconds=tuning.execution_lease_seconds),
            max_concurrent_executions=tuning.max_concurrent_executions,
        )

    return RescreeningScheduler(
        store=store or InMemoryScheduleStore(),
        orchestrator=orchestrator,
        subject_source=subject_source,
        config=config,
        event_sink=event_sink,
    )
