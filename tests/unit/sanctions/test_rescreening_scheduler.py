"""Unit tests for the rescreening scheduler.

Tests schedule management, due execution, retry with backoff, manual
attention, cancellation and exactly-once claiming across runs.
"""

import asyncio
from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from screenguard.sanctions import (
    InMemoryEventSink,
    InMemoryScheduleStore,
    InMemorySubjectSource,
    InMemoryWatchlistRepository,
    InvalidSubjectError,
    PepProfile,
    RescreeningConfig,
    RescreeningScheduler,
    RiskTier,
    SanctionsList,
    ScheduleNotFoundError,
    ScheduleStatus,
    ScreeningEventType,
    ScreeningFrequency,
    ScreeningOptions,
    ScreeningOrchestrator,
    ScreeningSchedule,
    ScreeningSubject,
    create_rescreening_scheduler,
)


class FailingRepository(InMemoryWatchlistRepository):
    """Repository whose availability check always fails."""

    async def is_list_available(self, list_source: SanctionsList) -> bool:
        raise ConnectionError("registry offline")


@pytest.fixture
def subject_source(sample_subject, clean_subject) -> InMemorySubjectSource:
    """Create a subject source with the sample subjects."""
    return InMemorySubjectSource([sample_subject, clean_subject])


@pytest.fixture
def schedule_sink() -> InMemoryEventSink:
    """Create a sink for schedule events."""
    return InMemoryEventSink()


@pytest.fixture
def store() -> InMemoryScheduleStore:
    """Create an in-memory schedule store."""
    return InMemoryScheduleStore()


@pytest.fixture
def scheduler(store, orchestrator, subject_source, schedule_sink) -> RescreeningScheduler:
    """Create a scheduler over the sample orchestrator."""
    return RescreeningScheduler(store, orchestrator, subject_source, event_sink=schedule_sink)


@pytest.fixture
def failing_scheduler(store, subject_source, schedule_sink) -> RescreeningScheduler:
    """Create a scheduler whose screenings always fail transiently."""
    orchestrator = ScreeningOrchestrator(FailingRepository())
    return RescreeningScheduler(store, orchestrator, subject_source, event_sink=schedule_sink)


# =============================================================================
# Scheduling Tests
# =============================================================================


class TestScheduleScreening:
    """Tests for creating and replacing schedules."""

    @pytest.mark.asyncio
    async def test_schedule(self, scheduler, as_of):
        """Test a new schedule is first due one interval out."""
        schedule = await scheduler.schedule_screening(
            "C-1001", ScreeningFrequency.MONTHLY, as_of=as_of, metadata={"segment": "retail"}
        )

        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.next_due == as_of + timedelta(days=30)
        assert schedule.scheduled_at == as_of
        assert schedule.version == 0
        assert schedule.metadata == {"segment": "retail"}
        assert await scheduler.get_next_screening_date("C-1001") == as_of + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_replace_existing(self, scheduler, as_of):
        """Test scheduling again replaces the schedule and bumps its version."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.MONTHLY, as_of=as_of)

        schedule = await scheduler.schedule_screening(
            "C-1001", ScreeningFrequency.DAILY, as_of=as_of, lists=[SanctionsList.OFAC_SDN]
        )

        assert schedule.frequency == ScreeningFrequency.DAILY
        assert schedule.next_due == as_of + timedelta(days=1)
        assert schedule.lists == [SanctionsList.OFAC_SDN]
        assert schedule.version == 1

    @pytest.mark.asyncio
    async def test_empty_subject_id_rejected(self, scheduler):
        """Test an empty subject id is rejected."""
        with pytest.raises(InvalidSubjectError):
            await scheduler.schedule_screening("  ", ScreeningFrequency.MONTHLY)

    @pytest.mark.asyncio
    async def test_bulk_isolates_failures(self, scheduler, as_of):
        """Test bulk scheduling records failures per subject."""
        summary = await scheduler.bulk_schedule_screening(
            ["A-1", "", "A-2"], ScreeningFrequency.QUARTERLY, as_of=as_of
        )

        assert summary.total == 3
        assert summary.scheduled == 2
        assert summary.failed == 1
        assert "" in summary.errors
        assert await scheduler.get_schedule("A-2") is not None

    @pytest.mark.asyncio
    async def test_immediate_new_subject(self, scheduler, as_of):
        """Test an unscheduled subject becomes due at once."""
        schedule = await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)

        assert schedule.next_due == as_of
        assert schedule.frequency == ScreeningFrequency.MONTHLY
        assert await scheduler.get_subjects_due(as_of) == ["C-1001"]

    @pytest.mark.asyncio
    async def test_immediate_existing_keeps_frequency(self, scheduler, as_of):
        """Test an existing schedule only has next_due pulled forward."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.ANNUALLY, as_of=as_of)

        later = as_of + timedelta(days=3)
        schedule = await scheduler.schedule_immediate_screening("C-1001", as_of=later)

        assert schedule.frequency == ScreeningFrequency.ANNUALLY
        assert schedule.next_due == later


class TestUpdateFrequency:
    """Tests for changing a schedule's frequency."""

    @pytest.mark.asyncio
    async def test_anchor_on_scheduling_time(self, scheduler, as_of):
        """Test a never-run schedule is re-anchored on its scheduling instant."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.MONTHLY, as_of=as_of)

        schedule = await scheduler.update_frequency("C-1001", ScreeningFrequency.WEEKLY)

        assert schedule.frequency == ScreeningFrequency.WEEKLY
        assert schedule.next_due == as_of + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_anchor_on_last_execution(self, scheduler, as_of):
        """Test an executed schedule is re-anchored on its last execution."""
        await scheduler.schedule_screening("C-2002", ScreeningFrequency.DAILY, as_of=as_of)
        ran_at = as_of + timedelta(days=1)
        await scheduler.execute_due(ran_at)

        schedule = await scheduler.update_frequency("C-2002", ScreeningFrequency.QUARTERLY)

        assert schedule.next_due == ran_at + timedelta(days=90)

    @pytest.mark.asyncio
    async def test_missing_schedule(self, scheduler):
        """Test updating an unknown subject raises."""
        with pytest.raises(ScheduleNotFoundError):
            await scheduler.update_frequency("nobody", ScreeningFrequency.WEEKLY)


class TestCancel:
    """Tests for cancelling schedules."""

    @pytest.mark.asyncio
    async def test_cancelled_never_due(self, scheduler, as_of):
        """Test a cancelled schedule is never selected."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.DAILY, as_of=as_of)

        schedule = await scheduler.cancel_scheduled_screening("C-1001")
        summary = await scheduler.execute_due(as_of + timedelta(days=5))

        assert schedule.status == ScheduleStatus.CANCELLED
        assert summary.total_due == 0
        assert await scheduler.get_next_screening_date("C-1001") is None

    @pytest.mark.asyncio
    async def test_cancel_missing(self, scheduler):
        """Test cancelling an unknown subject raises."""
        with pytest.raises(ScheduleNotFoundError):
            await scheduler.cancel_scheduled_screening("nobody")


# =============================================================================
# Execution Tests
# =============================================================================


class TestExecuteDue:
    """Tests for executing due schedules."""

    @pytest.mark.asyncio
    async def test_success_advances_schedule(self, scheduler, as_of, schedule_sink):
        """Test a successful rescreening advances next_due by the interval."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.WEEKLY, as_of=as_of)
        run_at = as_of + timedelta(days=8)

        summary = await scheduler.execute_due(run_at)

        assert summary.total_due == 1
        assert summary.executed == 1
        assert summary.succeeded == 1
        assert summary.results["C-1001"].overall_risk == RiskTier.HIGH

        schedule = await scheduler.get_schedule("C-1001")
        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.next_due == run_at + timedelta(days=7)
        assert schedule.last_executed_at == run_at
        assert schedule.last_succeeded_at == run_at
        assert schedule.execution_count == 1
        assert schedule.last_risk_tier == RiskTier.HIGH
        assert schedule.execution_id is None

        advanced = schedule_sink.get_events(ScreeningEventType.SCHEDULE_ADVANCED)
        assert len(advanced) == 1
        assert advanced[0].payload["next_due"] == schedule.next_due.isoformat()

    @pytest.mark.asyncio
    async def test_not_yet_due(self, scheduler, as_of):
        """Test schedules whose next_due is in the future are left alone."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.WEEKLY, as_of=as_of)

        summary = await scheduler.execute_due(as_of + timedelta(days=6))

        assert summary.total_due == 0
        assert summary.executed == 0

    @pytest.mark.asyncio
    async def test_rerun_after_success_is_noop(self, scheduler, as_of):
        """Test running twice at the same instant screens each subject once."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.DAILY, as_of=as_of)
        await scheduler.schedule_screening("C-2002", ScreeningFrequency.DAILY, as_of=as_of)
        run_at = as_of + timedelta(days=1)

        first = await scheduler.execute_due(run_at)
        second = await scheduler.execute_due(run_at)

        assert first.succeeded == 2
        assert second.total_due == 0

    @pytest.mark.asyncio
    async def test_limit(self, scheduler, as_of):
        """Test the limit bounds how many schedules a run processes."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.DAILY, as_of=as_of)
        await scheduler.schedule_screening("C-2002", ScreeningFrequency.DAILY, as_of=as_of)

        summary = await scheduler.execute_due(as_of + timedelta(days=1), limit=1)

        assert summary.total_due == 1
        assert summary.succeeded == 1

    @pytest.mark.asyncio
    async def test_rescreening_uses_run_time(self, store, subject_source):
        """Test PEP decay is measured from the run time, not the clock."""
        repository = InMemoryWatchlistRepository(
            pep_profiles=[
                PepProfile(
                    pep_id="PEP-9",
                    name="Mohammad Al-Rahman",
                    position="Minister of Interior",
                    end_date=date(2019, 6, 1),
                )
            ]
        )
        scheduler = RescreeningScheduler(
            store,
            ScreeningOrchestrator(repository),
            subject_source,
            config=RescreeningConfig(screening_options=ScreeningOptions(include_pep=True)),
        )
        run_at = datetime(2020, 1, 15, 12, 0, tzinfo=UTC)
        await scheduler.schedule_immediate_screening(
            "C-1001", as_of=datetime(2020, 1, 1, tzinfo=UTC)
        )

        summary = await scheduler.execute_due(run_at)

        result = summary.results["C-1001"]
        assessment = result.pep_matches[0].assessment
        assert assessment.as_of == run_at
        assert assessment.months_since_end == 7
        assert assessment.is_former is False
        assert assessment.risk_tier == RiskTier.HIGH
        assert result.screened_at == run_at
        assert result.requires_review is True


class TestFailureHandling:
    """Tests for retry backoff and manual attention."""

    @pytest.mark.asyncio
    async def test_retry_backoff(self, failing_scheduler, as_of):
        """Test transient failures are retried with doubling delays."""
        await failing_scheduler.schedule_immediate_screening("C-1001", as_of=as_of)

        summary = await failing_scheduler.execute_due(as_of)
        schedule = await failing_scheduler.get_schedule("C-1001")

        assert summary.failed == 1
        assert summary.retry_scheduled == 1
        assert "registry offline" in summary.errors["C-1001"]
        assert schedule.status == ScheduleStatus.FAILED
        assert schedule.consecutive_failures == 1
        assert schedule.next_due == as_of + timedelta(minutes=5)

        second_at = schedule.next_due
        await failing_scheduler.execute_due(second_at)
        schedule = await failing_scheduler.get_schedule("C-1001")

        assert schedule.consecutive_failures == 2
        assert schedule.next_due == second_at + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_manual_attention_after_retry_limit(
        self, failing_scheduler, as_of, schedule_sink
    ):
        """Test the schedule is parked once retries are exhausted."""
        await failing_scheduler.schedule_immediate_screening("C-1001", as_of=as_of)

        run_at = as_of
        for _ in range(3):
            await failing_scheduler.execute_due(run_at)
            run_at = (await failing_scheduler.get_schedule("C-1001")).next_due

        summary = await failing_scheduler.execute_due(run_at)
        schedule = await failing_scheduler.get_schedule("C-1001")

        assert summary.manual_attention == 1
        assert schedule.status == ScheduleStatus.MANUAL_ATTENTION
        assert schedule.consecutive_failures == 4
        assert schedule.execution_count == 4
        assert len(schedule_sink.get_events(ScreeningEventType.SCHEDULE_FAILED)) == 1

        later = await failing_scheduler.execute_due(run_at + timedelta(days=30))
        assert later.total_due == 0

    @pytest.mark.asyncio
    async def test_missing_subject_needs_attention(self, scheduler, as_of):
        """Test a schedule for an unknown subject is parked immediately."""
        await scheduler.schedule_immediate_screening("ghost", as_of=as_of)

        summary = await scheduler.execute_due(as_of)
        schedule = await scheduler.get_schedule("ghost")

        assert summary.manual_attention == 1
        assert schedule.status == ScheduleStatus.MANUAL_ATTENTION
        assert schedule.next_due == as_of
        assert "subject not found" in schedule.last_error

    @pytest.mark.asyncio
    async def test_reset_manual_attention(self, scheduler, subject_source, as_of):
        """Test a parked schedule can be returned to the queue."""
        await scheduler.schedule_immediate_screening("C-3003", as_of=as_of)
        await scheduler.execute_due(as_of)
        subject_source.add_subject(ScreeningSubject(subject_id="C-3003", full_name="Jane Doe"))

        reset_at = as_of + timedelta(hours=1)
        schedule = await scheduler.reset_manual_attention("C-3003", as_of=reset_at)
        summary = await scheduler.execute_due(reset_at)

        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.consecutive_failures == 0
        assert schedule.last_error is None
        assert summary.succeeded == 1

    @pytest.mark.asyncio
    async def test_reset_other_status_unchanged(self, scheduler, as_of):
        """Test resetting a healthy schedule changes nothing."""
        created = await scheduler.schedule_screening(
            "C-1001", ScreeningFrequency.MONTHLY, as_of=as_of
        )
        schedule = await scheduler.reset_manual_attention("C-1001", as_of=as_of)
        assert schedule == created

    @pytest.mark.asyncio
    async def test_unexpected_error_is_retried(self, scheduler, orchestrator, as_of):
        """Test an unexpected exception is treated as a transient failure."""
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)

        with patch.object(orchestrator, "screen", AsyncMock(side_effect=RuntimeError("boom"))):
            summary = await scheduler.execute_due(as_of)

        schedule = await scheduler.get_schedule("C-1001")
        assert summary.retry_scheduled == 1
        assert schedule.status == ScheduleStatus.FAILED
        assert "boom" in schedule.last_error

    def test_retry_delay_capped(self, scheduler):
        """Test the backoff delay never exceeds the configured maximum."""
        assert scheduler.retry_delay(1) == timedelta(minutes=5)
        assert scheduler.retry_delay(3) == timedelta(minutes=20)
        assert scheduler.retry_delay(20) == timedelta(days=1)


# =============================================================================
# Concurrency and Cancellation Tests
# =============================================================================


class TestConcurrency:
    """Tests for overlapping runs and cancellation."""

    @pytest.mark.asyncio
    async def test_overlapping_runs_screen_each_subject_once(
        self, scheduler, orchestrator, as_of
    ):
        """Test two concurrent runs never screen the same due subject twice."""
        subject_ids = ["C-1001", "C-2002"]
        for subject_id in subject_ids:
            await scheduler.schedule_immediate_screening(subject_id, as_of=as_of)

        spy = AsyncMock(side_effect=orchestrator.screen)
        with patch.object(orchestrator, "screen", spy):
            first, second = await asyncio.gather(
                scheduler.execute_due(as_of), scheduler.execute_due(as_of)
            )

        assert spy.await_count == len(subject_ids)
        assert first.succeeded + second.succeeded == len(subject_ids)
        for subject_id in subject_ids:
            schedule = await scheduler.get_schedule(subject_id)
            assert schedule.execution_count == 1
            assert schedule.status == ScheduleStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_cancel_event_before_start(self, scheduler, as_of):
        """Test nothing is claimed once cancellation was requested."""
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)
        cancel = asyncio.Event()
        cancel.set()

        summary = await scheduler.execute_due(as_of, cancel_event=cancel)
        schedule = await scheduler.get_schedule("C-1001")

        assert summary.not_started == 1
        assert summary.executed == 0
        assert summary.cancelled is True
        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.next_due == as_of

    @pytest.mark.asyncio
    async def test_cancel_event_mid_run(self, store, orchestrator, subject_source, as_of):
        """Test running screenings finish while remaining ones are not started."""
        scheduler = RescreeningScheduler(
            store,
            orchestrator,
            subject_source,
            RescreeningConfig(max_concurrent_executions=1),
        )
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)
        await scheduler.schedule_immediate_screening("C-2002", as_of=as_of)
        cancel = asyncio.Event()
        screen = orchestrator.screen

        async def screen_then_cancel(*args, **kwargs):
            result = await screen(*args, **kwargs)
            cancel.set()
            return result

        with patch.object(orchestrator, "screen", AsyncMock(side_effect=screen_then_cancel)):
            summary = await scheduler.execute_due(as_of, cancel_event=cancel)

        assert summary.succeeded == 1
        assert summary.not_started == 1
        assert summary.cancelled is True

    @pytest.mark.asyncio
    async def test_task_cancellation_releases_claim(self, scheduler, orchestrator, as_of):
        """Test a cancelled executor hands its claim back."""
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)
        started = asyncio.Event()

        async def hang(*args, **kwargs):
            started.set()
            await asyncio.Event().wait()

        with patch.object(orchestrator, "screen", AsyncMock(side_effect=hang)):
            task = asyncio.create_task(scheduler.execute_due(as_of))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        schedule = await scheduler.get_schedule("C-1001")
        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.execution_id is None
        assert schedule.execution_count == 0
        assert await scheduler.get_subjects_due(as_of) == ["C-1001"]

    @pytest.mark.asyncio
    async def test_stale_claim_reclaimed(self, scheduler, store, as_of):
        """Test a claim older than the lease is taken over."""
        await store.insert(
            ScreeningSchedule(
                subject_id="C-1001",
                frequency=ScreeningFrequency.MONTHLY,
                status=ScheduleStatus.EXECUTING,
                next_due=as_of - timedelta(hours=2),
                execution_id=uuid4(),
                claimed_at=as_of - timedelta(hours=1),
                scheduled_at=as_of - timedelta(days=30),
            )
        )

        summary = await scheduler.execute_due(as_of)
        schedule = await scheduler.get_schedule("C-1001")

        assert summary.succeeded == 1
        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.next_due == as_of + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_fresh_claim_not_reclaimed(self, scheduler, store, as_of):
        """Test a claim within the lease is left to its executor."""
        await store.insert(
            ScreeningSchedule(
                subject_id="C-1001",
                frequency=ScreeningFrequency.MONTHLY,
                status=ScheduleStatus.EXECUTING,
                next_due=as_of - timedelta(hours=2),
                execution_id=uuid4(),
                claimed_at=as_of - timedelta(minutes=5),
                scheduled_at=as_of - timedelta(days=30),
            )
        )

        summary = await scheduler.execute_due(as_of)

        assert summary.total_due == 0

    @pytest.mark.asyncio
    async def test_cancelled_during_execution_stays_cancelled(
        self, scheduler, orchestrator, as_of
    ):
        """Test a schedule cancelled mid-screening is not advanced."""
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)
        screen = orchestrator.screen

        async def cancel_then_screen(subject, *args, **kwargs):
            await scheduler.cancel_scheduled_screening(subject.subject_id)
            return await screen(subject, *args, **kwargs)

        with patch.object(orchestrator, "screen", AsyncMock(side_effect=cancel_then_screen)):
            summary = await scheduler.execute_due(as_of)

        schedule = await scheduler.get_schedule("C-1001")
        assert schedule.status == ScheduleStatus.CANCELLED
        assert schedule.execution_count == 0
        assert summary.skipped == 1
        assert summary.executed == 0
        assert summary.succeeded == 0
        assert summary.results == {}

    @pytest.mark.asyncio
    async def test_failure_after_takeover_is_skipped(
        self, scheduler, orchestrator, schedule_sink, as_of
    ):
        """Test a failure is not recorded once another writer owns the schedule."""
        await scheduler.schedule_immediate_screening("C-1001", as_of=as_of)

        async def replace_then_fail(subject, *args, **kwargs):
            await scheduler.schedule_screening(
                subject.subject_id, ScreeningFrequency.DAILY, as_of=as_of
            )
            raise RuntimeError("boom")

        with patch.object(orchestrator, "screen", AsyncMock(side_effect=replace_then_fail)):
            summary = await scheduler.execute_due(as_of)

        schedule = await scheduler.get_schedule("C-1001")
        assert summary.skipped == 1
        assert summary.failed == 0
        assert summary.retry_scheduled == 0
        assert summary.errors == {}
        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.frequency == ScreeningFrequency.DAILY
        assert schedule.consecutive_failures == 0
        assert schedule_sink.get_events(ScreeningEventType.SCHEDULE_FAILED) == []


# =============================================================================
# Query Tests
# =============================================================================


class TestQueries:
    """Tests for due lists and statistics."""

    @pytest.mark.asyncio
    async def test_subjects_due_ordering_and_limit(self, scheduler, as_of):
        """Test due subjects are earliest first and the limit is clamped."""
        await scheduler.schedule_screening("M", ScreeningFrequency.MONTHLY, as_of=as_of)
        await scheduler.schedule_screening("D", ScreeningFrequency.DAILY, as_of=as_of)
        await scheduler.schedule_screening("W", ScreeningFrequency.WEEKLY, as_of=as_of)
        later = as_of + timedelta(days=40)

        assert await scheduler.get_subjects_due(later) == ["D", "W", "M"]
        assert await scheduler.get_subjects_due(later, limit=2) == ["D", "W"]
        assert await scheduler.get_subjects_due(later, limit=0) == ["D"]
        assert await scheduler.get_subjects_due(as_of) == []

    @pytest.mark.asyncio
    async def test_next_screening_date_unknown(self, scheduler):
        """Test an unscheduled subject has no next date."""
        assert await scheduler.get_next_screening_date("nobody") is None

    @pytest.mark.asyncio
    async def test_execution_statistics(self, scheduler, as_of):
        """Test statistics count schedules by status and frequency."""
        await scheduler.schedule_screening("C-1001", ScreeningFrequency.DAILY, as_of=as_of)
        await scheduler.schedule_screening("C-2002", ScreeningFrequency.MONTHLY, as_of=as_of)
        await scheduler.schedule_immediate_screening("ghost", as_of=as_of)
        await scheduler.execute_due(as_of)

        stats = await scheduler.get_execution_statistics(as_of + timedelta(days=2))

        assert stats["total_schedules"] == 3
        assert stats["by_status"]["scheduled"] == 2
        assert stats["by_status"]["manual_attention"] == 1
        assert stats["by_frequency"]["daily"] == 1
        assert stats["by_frequency"]["monthly"] == 2
        assert stats["due_now"] == 1
        assert stats["total_executions"] == 1
        assert stats["failing"] == 1


class TestFactory:
    """Tests for create_rescreening_scheduler."""

    def test_configured_from_settings(self, orchestrator, subject_source):
        """Test the factory maps rescreening settings."""
        scheduler = create_rescreening_scheduler(orchestrator, subject_source)

        assert isinstance(scheduler, RescreeningScheduler)
        assert isinstance(scheduler.store, InMemoryScheduleStore)
        assert scheduler.config.max_retries == 3
        assert scheduler.config.retry_base_delay == timedelta(seconds=300)
        assert scheduler.config.execution_lease == timedelta(minutes=30)
