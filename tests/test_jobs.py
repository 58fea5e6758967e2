"""
Tests for background jobs and scheduler wiring.
"""
import importlib
from contextlib import asynccontextmanager

import pytest

import app.database
from app.jobs.score_jobs import refresh_stale_scores

scheduler_module = importlib.import_module("app.jobs.scheduler")


@pytest.fixture
def job_sessions(monkeypatch, session_factory):
    @asynccontextmanager
    async def test_session():
        async with session_factory() as session:
            yield session
            await session.commit()

    monkeypatch.setattr(app.database, "get_db_session", test_session)


class TestScoreJobs:

    async def test_refresh_stale_scores(self, job_sessions, make_courier):
        await make_courier(full_name="A")
        await make_courier(full_name="B")

        result = await refresh_stale_scores()

        assert result["refreshed"] == 2
        assert result["failed"] == 0
        assert result["duration_seconds"] >= 0

        again = await refresh_stale_scores()
        assert again["refreshed"] == 0

    async def test_run_job_logs_failures(self, monkeypatch, caplog):
        async def broken():
            raise RuntimeError("store offline")

        monkeypatch.setattr("app.jobs.score_jobs.refresh_stale_scores", broken)

        await scheduler_module.run_job("refresh_stale_scores")

        assert "store offline" in caplog.text


class TestScheduler:

    async def test_start_registers_refresh_job(self):
        scheduler_module.start_scheduler()
        try:
            jobs = scheduler_module.get_job_status()
            assert [job["id"] for job in jobs] == ["refresh_stale_scores"]
            assert "interval" in jobs[0]["trigger"]
        finally:
            scheduler_module.shutdown_scheduler()
            scheduler_module.scheduler.remove_all_jobs()

        assert not scheduler_module.scheduler.running
