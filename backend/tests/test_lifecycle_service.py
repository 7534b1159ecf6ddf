"""
Waterfall Manager Backend — Lifecycle Service Tests
====================================================

What:  Tests for the phase transition engine and ledger queries.
How:   Real SQL against in-memory SQLite for persistence behaviour; a mock
       session where the point is that no SQL was issued at all.

What we test:
    ✅ Successful transition writes one record and moves the pointer
    ✅ Unauthorized roles and empty descriptions write nothing
    ✅ Unknown project rolls the unit back (NotFoundError)
    ✅ Storage failure inside the unit rolls back (StorageError)
    ✅ Concurrent transitions on one project both land, pointer follows the last
    ✅ History ordering, record lookup, pointer equals latest record
"""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import Base
from app.exceptions import AuthorizationError, NotFoundError, StorageError, ValidationError
from app.models.phases import Phase, ProjectStatus, Role
from app.models.project import Project
from app.models.types import utc_now
from app.schemas.lifecycle import TransitionRequest
from app.services.lifecycle_service import LifecycleService
from app.services.project_service import ProjectService


def _request(project_id, phase: Phase, description: str = "Reqs gathered", attachments=None):
    return TransitionRequest(
        project_id=project_id,
        phase=phase,
        description=description,
        attachments=attachments,
    )


class TestTransition:
    """Tests for LifecycleService.transition."""

    def setup_method(self):
        self.service = LifecycleService()
        self.projects = ProjectService()

    @pytest.mark.asyncio
    async def test_admin_transition_records_and_moves_pointer(self, db_session, project, make_identity):
        """Admin transition returns the record and moves current_phase."""
        admin = make_identity(Role.ADMIN)

        record = await self.service.transition(
            db=db_session, request=_request(project.id, Phase.REQUIREMENTS), actor=admin
        )

        assert record.phase is Phase.REQUIREMENTS
        assert record.approved_by == admin.user_id
        assert record.project_id == project.id
        assert record.description == "Reqs gathered"
        assert record.created_at == record.updated_at

        refreshed = await self.projects.get_project(db_session, project.id)
        assert refreshed.current_phase is Phase.REQUIREMENTS

    @pytest.mark.asyncio
    async def test_project_manager_may_transition(self, db_session, project, make_identity):
        """ProjectManager is allowed to transition."""
        record = await self.service.transition(
            db=db_session,
            request=_request(project.id, Phase.DESIGN),
            actor=make_identity(Role.PROJECT_MANAGER),
        )
        assert record.phase is Phase.DESIGN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [Role.DEVELOPER, Role.QA_ENGINEER])
    async def test_other_roles_are_forbidden_and_nothing_is_written(
        self, db_session, project, make_identity, role
    ):
        """Developer and QaEngineer get AuthorizationError; ledger and pointer untouched."""
        project_id = project.id

        with pytest.raises(AuthorizationError) as exc_info:
            await self.service.transition(
                db=db_session, request=_request(project_id, Phase.REQUIREMENTS), actor=make_identity(role)
            )

        assert exc_info.value.operation == "transition_phase"
        assert await self.service.get_history(db_session, project_id) == []
        refreshed = await self.projects.get_project(db_session, project_id)
        assert refreshed.current_phase is Phase.PROPOSAL

    @pytest.mark.asyncio
    async def test_empty_description_rejected(self, db_session, project, make_identity):
        """An empty description raises ValidationError and writes nothing."""
        project_id = project.id

        with pytest.raises(ValidationError) as exc_info:
            await self.service.transition(
                db=db_session,
                request=_request(project_id, Phase.DESIGN, description=""),
                actor=make_identity(Role.ADMIN),
            )

        assert exc_info.value.field == "description"
        assert await self.service.get_history(db_session, project_id) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("description", ["   ", "\n\t"])
    async def test_whitespace_description_is_accepted(self, db_session, project, make_identity, description):
        """Whitespace is a non-empty description and is stored verbatim."""
        record = await self.service.transition(
            db=db_session,
            request=_request(project.id, Phase.DESIGN, description=description),
            actor=make_identity(Role.ADMIN),
        )

        assert record.description == description
        history = await self.service.get_history(db_session, project.id)
        assert [r.id for r in history] == [record.id]

    @pytest.mark.asyncio
    async def test_rejections_issue_no_sql(self, mock_db_session, make_identity):
        """Validation and authorization run before any database access."""
        with pytest.raises(ValidationError):
            await self.service.transition(
                db=mock_db_session,
                request=_request(uuid4(), Phase.DESIGN, description=""),
                actor=make_identity(Role.ADMIN),
            )
        with pytest.raises(AuthorizationError):
            await self.service.transition(
                db=mock_db_session,
                request=_request(uuid4(), Phase.DESIGN),
                actor=make_identity(Role.DEVELOPER),
            )

        mock_db_session.execute.assert_not_awaited()
        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_description_checked_before_role(self, mock_db_session, make_identity):
        """A Developer with an empty description gets ValidationError, not AuthorizationError."""
        with pytest.raises(ValidationError):
            await self.service.transition(
                db=mock_db_session,
                request=_request(uuid4(), Phase.DESIGN, description=""),
                actor=make_identity(Role.DEVELOPER),
            )

    @pytest.mark.asyncio
    async def test_unknown_project_rolls_back(self, db_session, make_identity):
        """Unknown project raises NotFoundError and leaves no record."""
        missing = uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.transition(
                db=db_session, request=_request(missing, Phase.DESIGN), actor=make_identity(Role.ADMIN)
            )

        assert exc_info.value.resource == "project"
        assert await self.service.get_history(db_session, missing) == []

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back_both_writes(self, db_session, project, make_identity):
        """A flush failure surfaces as StorageError with neither write committed."""
        project_id = project.id
        failure = OperationalError("INSERT INTO phase_transitions", {}, Exception("disk I/O error"))

        with patch.object(db_session, "flush", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageError) as exc_info:
                await self.service.transition(
                    db=db_session,
                    request=_request(project_id, Phase.IMPLEMENTATION),
                    actor=make_identity(Role.ADMIN),
                )

        # generic message; driver detail stays in context
        assert "disk I/O" not in exc_info.value.message
        assert exc_info.value.context["error_type"] == "OperationalError"

        assert await self.service.get_history(db_session, project_id) == []
        refreshed = await self.projects.get_project(db_session, project_id)
        assert refreshed.current_phase is Phase.PROPOSAL

    @pytest.mark.asyncio
    async def test_attachments_kept_in_order(self, db_session, project, make_identity):
        """Attachments come back in submission order."""
        record = await self.service.transition(
            db=db_session,
            request=_request(project.id, Phase.DESIGN, attachments=["srs-v2.pdf", "erd.png", "srs-v1.pdf"]),
            actor=make_identity(Role.ADMIN),
        )

        fetched = await self.service.get_record(db_session, record.id)
        assert fetched.attachments == ["srs-v2.pdf", "erd.png", "srs-v1.pdf"]

    @pytest.mark.asyncio
    async def test_absent_attachments_stay_absent(self, db_session, project, make_identity):
        """No attachments supplied means null, not an empty list."""
        record = await self.service.transition(
            db=db_session, request=_request(project.id, Phase.DESIGN), actor=make_identity(Role.ADMIN)
        )

        fetched = await self.service.get_record(db_session, record.id)
        assert fetched.attachments is None

    @pytest.mark.asyncio
    async def test_backward_and_repeated_moves_accepted(self, db_session, project, make_identity):
        """No sequencing rule: backward, skipping and repeated moves are all recorded."""
        admin = make_identity(Role.ADMIN)
        for phase in (Phase.TESTING, Phase.DESIGN, Phase.DESIGN, Phase.CLOSED, Phase.PROPOSAL):
            await self.service.transition(db=db_session, request=_request(project.id, phase), actor=admin)

        history = await self.service.get_history(db_session, project.id)
        assert [r.phase for r in history] == [
            Phase.TESTING,
            Phase.DESIGN,
            Phase.DESIGN,
            Phase.CLOSED,
            Phase.PROPOSAL,
        ]


class TestConcurrentTransitions:
    """Two transitions racing on one project, each on its own connection."""

    def setup_method(self):
        self.service = LifecycleService()
        self.projects = ProjectService()

    @pytest.mark.asyncio
    async def test_both_records_land_and_pointer_follows_latest(self, tmp_path, make_identity):
        """Both ledger records persist; current_phase equals the newest record's phase."""
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}",
            connect_args={"timeout": 30},
        )
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

            now = utc_now()
            async with factory() as session:
                proj = Project(
                    name="Billing Revamp",
                    start_date=now,
                    end_date=now + timedelta(days=90),
                    status=ProjectStatus.PLANNING,
                    budget=Decimal("1000.00"),
                    current_phase=Phase.PROPOSAL,
                    created_at=now,
                    updated_at=now,
                )
                session.add(proj)
                await session.commit()
                project_id = proj.id

            admin = make_identity(Role.ADMIN)

            async def run(phase: Phase):
                async with factory() as session:
                    return await self.service.transition(
                        db=session, request=_request(project_id, phase), actor=admin
                    )

            first, second = await asyncio.gather(run(Phase.DESIGN), run(Phase.TESTING))

            async with factory() as session:
                history = await self.service.get_history(session, project_id)
                current = await self.projects.get_project(session, project_id)

            assert len(history) == 2
            assert {r.id for r in history} == {first.id, second.id}
            assert history[0].created_at < history[1].created_at
            assert current.current_phase is history[-1].phase
        finally:
            await engine.dispose()


class TestLedgerQueries:
    """Tests for get_record and get_history."""

    def setup_method(self):
        self.service = LifecycleService()
        self.projects = ProjectService()

    @pytest.mark.asyncio
    async def test_history_is_ordered_and_pointer_matches_latest(self, db_session, project, make_identity):
        """Sequential Requirements → Design gives that history and a Design pointer."""
        admin = make_identity(Role.ADMIN)
        await self.service.transition(db=db_session, request=_request(project.id, Phase.REQUIREMENTS), actor=admin)
        await self.service.transition(db=db_session, request=_request(project.id, Phase.DESIGN), actor=admin)

        history = await self.service.get_history(db_session, project.id)

        assert [r.phase for r in history] == [Phase.REQUIREMENTS, Phase.DESIGN]
        assert history[0].created_at < history[1].created_at
        refreshed = await self.projects.get_project(db_session, project.id)
        assert refreshed.current_phase is history[-1].phase

    @pytest.mark.asyncio
    async def test_same_clock_tick_still_strictly_ordered(self, db_session, project, make_identity):
        """Two transitions at a frozen clock still get strictly increasing created_at."""
        admin = make_identity(Role.ADMIN)
        frozen = (await self.projects.get_project(db_session, project.id)).created_at + timedelta(days=1)

        with patch("app.services.lifecycle_service.utc_now", return_value=frozen):
            first = await self.service.transition(
                db=db_session, request=_request(project.id, Phase.REQUIREMENTS), actor=admin
            )
            second = await self.service.transition(
                db=db_session, request=_request(project.id, Phase.DESIGN), actor=admin
            )

        assert second.created_at > first.created_at
        history = await self.service.get_history(db_session, project.id)
        assert [r.id for r in history] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_history_of_unknown_project_is_empty(self, db_session):
        """History of a project that never transitioned is an empty list."""
        assert await self.service.get_history(db_session, uuid4()) == []

    @pytest.mark.asyncio
    async def test_get_record_returns_committed_record(self, db_session, project, make_identity):
        """get_record returns exactly what transition returned."""
        created = await self.service.transition(
            db=db_session, request=_request(project.id, Phase.REQUIREMENTS), actor=make_identity(Role.ADMIN)
        )

        fetched = await self.service.get_record(db_session, created.id)

        assert fetched == created

    @pytest.mark.asyncio
    async def test_get_record_unknown_id(self, db_session):
        """Unknown record id raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_record(db_session, uuid4())
        assert exc_info.value.resource == "phase record"

    @pytest.mark.asyncio
    async def test_history_failure_is_storage_error(self, mock_db_session):
        """A failing history query surfaces as StorageError."""
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection reset"))
        )

        with pytest.raises(StorageError):
            await self.service.get_history(mock_db_session, uuid4())
