"""
Tests for the daily scheduler.

APScheduler's BackgroundScheduler is mocked; no thread is started.
"""

import pytest
from unittest.mock import Mock, patch

import src.scheduler as scheduler_module
from src.scheduler import JOB_ID, daily_check, start_scheduler, stop_scheduler


@pytest.fixture(autouse=True)
def reset_scheduler():
    """Each test starts without a global scheduler."""
    scheduler_module.scheduler = None
    yield
    scheduler_module.scheduler = None


class TestStartScheduler:
    """Tests for start_scheduler()."""

    def test_registers_daily_job(self):
        with patch("src.scheduler.BackgroundScheduler") as mock_cls:
            instance = mock_cls.return_value

            result = start_scheduler(hour=7, minute=30)

        assert result is instance
        instance.start.assert_called_once()
        args, kwargs = instance.add_job.call_args
        assert args[0] is daily_check
        assert kwargs["id"] == JOB_ID
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True
        assert kwargs["kwargs"] is None
        trigger = kwargs["trigger"]
        assert str(trigger.fields[trigger.FIELD_NAMES.index("hour")]) == "7"
        assert str(trigger.fields[trigger.FIELD_NAMES.index("minute")]) == "30"

    def test_defaults_come_from_config(self):
        with patch("src.scheduler.BackgroundScheduler") as mock_cls, \
             patch("src.scheduler.SCHEDULE_HOUR", 9), \
             patch("src.scheduler.SCHEDULE_MINUTE", 0):
            start_scheduler()

        trigger = mock_cls.return_value.add_job.call_args[1]["trigger"]
        assert str(trigger.fields[trigger.FIELD_NAMES.index("hour")]) == "9"

    def test_storage_is_passed_to_job(self):
        storage = Mock()
        with patch("src.scheduler.BackgroundScheduler") as mock_cls:
            start_scheduler(storage=storage)

        assert mock_cls.return_value.add_job.call_args[1]["kwargs"] == {"storage": storage}

    def test_second_start_returns_running_scheduler(self):
        with patch("src.scheduler.BackgroundScheduler") as mock_cls:
            mock_cls.return_value.running = True
            first = start_scheduler()
            second = start_scheduler()

        assert first is second
        assert mock_cls.call_count == 1


class TestStopScheduler:
    """Tests for stop_scheduler()."""

    def test_stop_running(self):
        running = Mock(running=True)
        scheduler_module.scheduler = running

        stop_scheduler()

        running.shutdown.assert_called_once_with(wait=False)
        assert scheduler_module.scheduler is None

    def test_stop_when_not_running(self):
        stop_scheduler()

        assert scheduler_module.scheduler is None


class TestDailyCheck:
    """Tests for the job body."""

    def test_runs_cycle(self):
        storage = Mock()
        with patch("src.scheduler.run_cycle") as mock_run:
            mock_run.return_value = Mock(status="sent")

            daily_check(storage)

        mock_run.assert_called_once_with(storage=storage)

    def test_crash_is_logged_not_raised(self):
        with patch("src.scheduler.run_cycle", side_effect=RuntimeError("boom")):
            daily_check()
