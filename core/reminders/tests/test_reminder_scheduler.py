"""Tests for the in-process reminder scheduler."""

import logging
from datetime import timedelta

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from core.reminders import scheduler
from core.reminders.config import ConfigurationError
from core.reminders.kinds import DEFAULT_TOLERANCE
from core.reminders.results import DispatchResult
from core.reminders.sessions import SessionFetchError


@pytest.fixture(autouse=True)
def reset_scheduler():
    scheduler._scheduler = None
    yield
    scheduler._scheduler = None


class TestInitScheduler:
    def test_adds_interval_job_and_starts(self):
        with patch("core.reminders.scheduler.AsyncIOScheduler") as mock_cls:
            instance = mock_cls.return_value

            result = scheduler.init_scheduler(interval_minutes=5)

        assert result is instance
        instance.add_job.assert_called_once()
        kwargs = instance.add_job.call_args.kwargs
        assert kwargs["trigger"] == "interval"
        assert kwargs["minutes"] == 5
        assert kwargs["id"] == scheduler.JOB_ID
        instance.start.assert_called_once()

        job_defaults = mock_cls.call_args.kwargs["job_defaults"]
        assert job_defaults["max_instances"] == 1
        assert job_defaults["coalesce"] is True

    def test_warns_when_interval_exceeds_configured_tolerance(self, caplog):
        config = MagicMock(narrowest_tolerance=timedelta(minutes=2))

        with (
            patch("core.reminders.scheduler.AsyncIOScheduler"),
            patch(
                "core.reminders.scheduler.DispatchConfig.from_env",
                return_value=config,
            ),
            caplog.at_level(logging.WARNING, logger="core.reminders.scheduler"),
        ):
            scheduler.init_scheduler(interval_minutes=5)

        assert "can skip reminder windows" in caplog.text

    def test_default_interval_fits_default_tolerance(self, caplog):
        with (
            patch("core.reminders.scheduler.AsyncIOScheduler"),
            caplog.at_level(logging.WARNING, logger="core.reminders.scheduler"),
        ):
            scheduler.init_scheduler(tolerance=DEFAULT_TOLERANCE)

        assert "can skip reminder windows" not in caplog.text

    def test_narrow_override_triggers_warning(self, caplog):
        env = {
            "DATABASE_URL": "postgresql://localhost/classes",
            "TELEGRAM_BOT_TOKEN": "123:abc",
            "REMINDER_TOLERANCE_OVERRIDES": "2m_before=1",
        }

        with (
            patch("core.reminders.scheduler.AsyncIOScheduler"),
            patch.dict("os.environ", env, clear=True),
            caplog.at_level(logging.WARNING, logger="core.reminders.scheduler"),
        ):
            scheduler.init_scheduler(interval_minutes=5)

        assert "tolerance of 0:01:00" in caplog.text

    def test_invalid_config_falls_back_to_default_tolerance(self, caplog):
        with (
            patch("core.reminders.scheduler.AsyncIOScheduler"),
            patch(
                "core.reminders.scheduler.DispatchConfig.from_env",
                side_effect=ConfigurationError("TELEGRAM_BOT_TOKEN missing"),
            ),
            caplog.at_level(logging.WARNING, logger="core.reminders.scheduler"),
        ):
            scheduler.init_scheduler(interval_minutes=5)

        assert "can skip reminder windows" not in caplog.text

    def test_second_init_reuses_scheduler(self):
        with patch("core.reminders.scheduler.AsyncIOScheduler") as mock_cls:
            first = scheduler.init_scheduler()
            second = scheduler.init_scheduler()

        assert first is second
        mock_cls.assert_called_once()

    def test_shutdown_clears_scheduler(self):
        mock_sched = MagicMock()
        scheduler._scheduler = mock_sched

        scheduler.shutdown_scheduler()

        mock_sched.shutdown.assert_called_once_with(wait=True)
        assert scheduler._scheduler is None


class TestScheduledDispatch:
    @pytest.mark.asyncio
    async def test_runs_dispatch_with_env_config(self):
        config = MagicMock()
        run = AsyncMock(return_value=DispatchResult(message="Reminders processed"))

        with (
            patch(
                "core.reminders.scheduler.DispatchConfig.from_env",
                return_value=config,
            ),
            patch("core.reminders.dispatcher.run_reminder_dispatch", run),
        ):
            await scheduler._run_scheduled_dispatch()

        run.assert_awaited_once_with(config)

    @pytest.mark.asyncio
    async def test_missing_config_skips_run(self):
        run = AsyncMock()

        with (
            patch(
                "core.reminders.scheduler.DispatchConfig.from_env",
                side_effect=ConfigurationError("TELEGRAM_BOT_TOKEN missing"),
            ),
            patch("core.reminders.dispatcher.run_reminder_dispatch", run),
        ):
            await scheduler._run_scheduled_dispatch()

        run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_failure_is_logged_not_raised(self):
        with (
            patch("core.reminders.scheduler.DispatchConfig.from_env"),
            patch(
                "core.reminders.dispatcher.run_reminder_dispatch",
                AsyncMock(side_effect=SessionFetchError("db down")),
            ),
        ):
            await scheduler._run_scheduled_dispatch()
