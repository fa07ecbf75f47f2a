"""
Unit tests for report_engine.pipeline.jobs
"""

from datetime import UTC, datetime, timedelta

import pytest

from report_engine.errors import ConfigError, NotFoundError
from report_engine.models import (
    Frequency,
    OutputFormat,
    Recipient,
    ReportFilters,
    ReportSettings,
    ReportType,
    ScheduleConfig,
)
from report_engine.pipeline import (
    JobDefinition,
    create_scheduled_job,
    delete_scheduled_job,
    due_jobs,
    get_scheduled_job,
    list_scheduled_jobs,
    update_scheduled_job,
)


def weekly_definition(**overrides) -> JobDefinition:
    fields = dict(
        name="Weekly Financial",
        report_type=ReportType.FINANCIAL,
        schedule=ScheduleConfig(Frequency.WEEKLY, "09:00", day_of_week=1),
        settings=ReportSettings(formats=[OutputFormat.JSON]),
        recipients=[Recipient("owner@example.com", "Owner")],
    )
    fields.update(overrides)
    return JobDefinition(**fields)


# ============================================================================
# Test Creation
# ============================================================================

class TestCreateScheduledJob:
    """Test job validation and creation"""

    def test_next_run_computed_from_creation(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), "alice", now=fixed_now)

        # 2024-03-15 is a Friday; the next Monday 09:00 UTC follows
        assert job.next_run == datetime(2024, 3, 18, 9, 0, tzinfo=UTC)
        assert job.created_by == "alice"
        assert job.version == 1
        assert job.id.startswith("job")

    def test_persisted(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        assert get_scheduled_job(memory_store, job.id) == job

    @pytest.mark.parametrize("overrides,message", [
        ({"name": "  "}, "name is required"),
        ({"report_type": "weekly_digest"}, "Unknown report type"),
        ({"schedule": ScheduleConfig(Frequency.WEEKLY, "09:00")}, "day_of_week"),
        ({"schedule": ScheduleConfig(Frequency.MONTHLY, "25:00", day_of_month=1)}, "time of day"),
        ({"settings": ReportSettings(formats=[])}, "output format"),
        ({"recipients": []}, "recipient"),
        ({"recipients": [Recipient("not-an-email")]}, "Invalid recipient"),
        (
            {"settings": ReportSettings(filters=ReportFilters(min_amount=10, max_amount=5))},
            "min_amount",
        ),
    ])
    def test_invalid_definitions(self, memory_store, fixed_now, overrides, message):
        with pytest.raises(ConfigError, match=message):
            create_scheduled_job(memory_store, weekly_definition(**overrides), now=fixed_now)

        assert memory_store.list("scheduled_reports") == []

    def test_inactive_job_needs_no_recipients(self, memory_store, fixed_now):
        job = create_scheduled_job(
            memory_store, weekly_definition(recipients=[], is_active=False), now=fixed_now
        )

        assert job.is_active is False


# ============================================================================
# Test Updates
# ============================================================================

class TestUpdateScheduledJob:
    """Test manual edits"""

    def test_schedule_change_recomputes_next_run(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        updated = update_scheduled_job(
            memory_store,
            job.id,
            {"schedule": {"frequency": "daily", "time": "07:30"}},
            now=fixed_now,
        )

        assert updated.schedule.frequency == Frequency.DAILY
        assert updated.next_run == datetime(2024, 3, 16, 7, 30, tzinfo=UTC)
        assert updated.version == 2

    def test_rename_keeps_next_run(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        updated = update_scheduled_job(
            memory_store, job.id, {"name": "Renamed"}, now=fixed_now + timedelta(days=1)
        )

        assert updated.name == "Renamed"
        assert updated.next_run == job.next_run

    def test_resume_recomputes_next_run(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)
        update_scheduled_job(memory_store, job.id, {"is_active": False}, now=fixed_now)

        later = datetime(2024, 4, 2, 12, 0, tzinfo=UTC)
        resumed = update_scheduled_job(memory_store, job.id, {"is_active": True}, now=later)

        assert resumed.next_run == datetime(2024, 4, 8, 9, 0, tzinfo=UTC)

    def test_unknown_field_rejected(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        with pytest.raises(ConfigError, match="next_run"):
            update_scheduled_job(memory_store, job.id, {"next_run": fixed_now})

    def test_invalid_change_not_committed(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        with pytest.raises(ConfigError):
            update_scheduled_job(
                memory_store, job.id, {"schedule": {"frequency": "monthly", "time": "09:00"}}
            )

        assert get_scheduled_job(memory_store, job.id).schedule.frequency == Frequency.WEEKLY

    def test_missing_job(self, memory_store):
        with pytest.raises(NotFoundError):
            update_scheduled_job(memory_store, "job-404", {"name": "x"})


# ============================================================================
# Test Listing and Deletion
# ============================================================================

class TestJobQueries:
    """Test listing, due selection and deletion"""

    def test_due_jobs_ordered_and_active_only(self, memory_store, fixed_now):
        daily = create_scheduled_job(
            memory_store,
            weekly_definition(name="Daily", schedule=ScheduleConfig(Frequency.DAILY, "06:00")),
            now=fixed_now,
        )
        weekly = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)
        create_scheduled_job(
            memory_store,
            weekly_definition(name="Paused", recipients=[], is_active=False),
            now=fixed_now,
        )

        assert due_jobs(memory_store, fixed_now) == []

        later = datetime(2024, 3, 20, tzinfo=UTC)
        assert [j.id for j in due_jobs(memory_store, later)] == [daily.id, weekly.id]

    def test_due_at_exact_next_run(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        assert [j.id for j in due_jobs(memory_store, job.next_run)] == [job.id]

    def test_list_active_only(self, memory_store, fixed_now):
        create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)
        create_scheduled_job(
            memory_store, weekly_definition(recipients=[], is_active=False), now=fixed_now
        )

        assert len(list_scheduled_jobs(memory_store)) == 2
        assert len(list_scheduled_jobs(memory_store, active_only=True)) == 1

    def test_delete(self, memory_store, fixed_now):
        job = create_scheduled_job(memory_store, weekly_definition(), now=fixed_now)

        delete_scheduled_job(memory_store, job.id)

        assert list_scheduled_jobs(memory_store) == []
        with pytest.raises(NotFoundError):
            delete_scheduled_job(memory_store, job.id)
