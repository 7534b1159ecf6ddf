"""
Waterfall Manager Backend — Database Helper Tests
==================================================

What:  The atomic unit's exit paths and the startup readiness check.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.database import atomic, wait_for_database


class TestAtomic:

    @pytest.mark.asyncio
    async def test_commits_on_normal_exit(self, mock_db_session):
        """Normal exit commits once and never rolls back."""
        async with atomic(mock_db_session):
            mock_db_session.add(object())

        mock_db_session.commit.assert_awaited_once()
        mock_db_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, mock_db_session):
        """An exception rolls back and propagates."""
        with pytest.raises(RuntimeError):
            async with atomic(mock_db_session):
                raise RuntimeError("boom")

        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_on_cancellation(self, mock_db_session):
        """Cancellation rolls back and propagates."""
        with pytest.raises(asyncio.CancelledError):
            async with atomic(mock_db_session):
                raise asyncio.CancelledError()

        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back(self, mock_db_session):
        """A failing commit is rolled back and re-raised."""
        mock_db_session.commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("connection lost"))
        )

        with pytest.raises(OperationalError):
            async with atomic(mock_db_session):
                pass

        mock_db_session.rollback.assert_awaited_once()


class TestWaitForDatabase:

    @pytest.mark.asyncio
    async def test_returns_when_database_answers(self):
        """Returns once SELECT 1 succeeds."""
        conn = AsyncMock()
        engine = MagicMock()
        engine.connect.return_value.__aenter__.return_value = conn

        await wait_for_database(engine, attempts=1)

        conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_last_attempt(self):
        """Re-raises the driver error after the final attempt."""
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        with pytest.raises(OperationalError):
            await wait_for_database(engine, attempts=1)

    @pytest.mark.asyncio
    async def test_against_real_engine(self, db_engine):
        """Works against a real SQLite engine."""
        await wait_for_database(db_engine, attempts=1)
