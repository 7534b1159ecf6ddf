"""
Waterfall Manager Backend — Lifecycle Service (Phase Transition Engine)
========================================================================

What:  Moves projects between lifecycle phases and serves the audit ledger.
How:   Validates, authorizes, then performs the ledger insert and the
       project pointer update inside one `atomic()` unit.
Who:   Called by the lifecycle route handlers.

Transition Flow:
    ┌──────────────┐   ┌─────────────┐   ┌───────────────────────────────┐
    │  Validate    │──▶│  Authorize  │──▶│  atomic unit                  │
    │  description │   │  role gate  │   │   lock project row (FOR UPDATE)│
    └──────────────┘   └─────────────┘   │   INSERT phase_transitions     │
                                         │   UPDATE projects.current_phase│
                                         │   COMMIT (or ROLLBACK on error)│
                                         └───────────────────────────────┘

    Validation and authorization failures happen before any SQL is issued.
    An unknown project raises NotFoundError inside the unit, which rolls it
    back. Any SQLAlchemy failure rolls the unit back and surfaces as
    StorageError with a generic message.

No sequencing rule is applied between the project's current phase and the
requested one: forward, backward and skipping moves are all accepted.

The service keeps no state between calls; every call gets its session from
the caller. Transient storage failures are not retried here. A failed unit
leaves nothing behind, so callers may retry the whole call.
"""

import logging
from datetime import datetime, timedelta
from typing import List
from uuid import UUID

from sqlalchemy import asc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import atomic
from app.exceptions import NotFoundError, StorageError, ValidationError
from app.models.phase_transition import PhaseTransition
from app.models.project import Project
from app.models.types import utc_now
from app.schemas.lifecycle import LedgerRecordResponse, TransitionRequest
from app.services.auth_service import Identity
from app.services.authorization import TRANSITION_PHASE, require

logger = logging.getLogger(__name__)


class LifecycleService:
    """
    Phase transition engine plus audit ledger queries.

    Responsibilities:
        - transition():   validate → authorize → atomic {insert record, move pointer}
        - get_record():   single ledger record, NotFoundError when absent
        - get_history():  all records for a project, oldest first
    """

    async def transition(
        self,
        db: AsyncSession,
        request: TransitionRequest,
        actor: Identity,
    ) -> LedgerRecordResponse:
        """
        Move `request.project_id` to `request.phase` on behalf of `actor`.

        Returns:
            The newly committed ledger record.

        Raises:
            ValidationError: description empty (no I/O performed)
            AuthorizationError: actor's role may not transition (no I/O performed)
            NotFoundError: project does not exist (unit rolled back)
            StorageError: database failure inside the unit (unit rolled back)
        """
        if not request.description:
            raise ValidationError(message="Description is required", field="description")

        require(actor.role, TRANSITION_PHASE)

        try:
            async with atomic(db):
                project = await self._lock_project(db, request.project_id)
                now = await self._next_timestamp(db, project.id)

                record = PhaseTransition(
                    project_id=project.id,
                    phase=request.phase,
                    description=request.description,
                    attachments=list(request.attachments) if request.attachments is not None else None,
                    approved_by=actor.user_id,
                    created_at=now,
                    updated_at=now,
                )
                db.add(record)

                project.current_phase = request.phase
                project.updated_at = now

                # Surface constraint/connection errors inside the unit
                await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Phase transition for project %s rolled back: %s",
                request.project_id,
                str(e),
                exc_info=True,
            )
            raise StorageError(
                message="Could not record the phase transition. Please try again.",
                context={
                    "project_id": str(request.project_id),
                    "error_type": type(e).__name__,
                },
            ) from e

        logger.info(
            "Project %s transitioned to phase %s by %s (record %s)",
            record.project_id,
            record.phase.api_name,
            actor.user_id,
            record.id,
        )
        return LedgerRecordResponse.model_validate(record)

    async def get_record(self, db: AsyncSession, record_id: UUID) -> LedgerRecordResponse:
        """
        Fetch one ledger record by id.

        Raises:
            NotFoundError: no record with that id (→ 404)
            StorageError: query failed (→ 500)
        """
        try:
            result = await db.execute(
                select(PhaseTransition).where(PhaseTransition.id == record_id)
            )
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching phase record %s: %s", record_id, str(e))
            raise StorageError(
                message="Could not retrieve the phase record. Please try again.",
                context={"record_id": str(record_id)},
            ) from e

        if record is None:
            raise NotFoundError(resource="phase record", resource_id=str(record_id))

        return LedgerRecordResponse.model_validate(record)

    async def get_history(self, db: AsyncSession, project_id: UUID) -> List[LedgerRecordResponse]:
        """
        All ledger records for a project, ordered by created_at ascending.

        An empty list is a valid answer: the project has never transitioned,
        or no such project exists.

        Query plan:
            SELECT ... FROM phase_transitions WHERE project_id = :pid
            ORDER BY created_at ASC
            → ix_phase_transitions_project_created
        """
        try:
            result = await db.execute(
                select(PhaseTransition)
                .where(PhaseTransition.project_id == project_id)
                .order_by(asc(PhaseTransition.created_at))
            )
            records = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing history for project %s: %s", project_id, str(e))
            raise StorageError(
                message="Could not retrieve the project lifecycle. Please try again.",
                context={"project_id": str(project_id)},
            ) from e

        return [LedgerRecordResponse.model_validate(record) for record in records]

    # ── Internals ─────────────────────────────────────────────────────────

    async def _lock_project(self, db: AsyncSession, project_id: UUID) -> Project:
        """Row-lock the project for the rest of the unit (no-op on SQLite)."""
        result = await db.execute(
            select(Project).where(Project.id == project_id).with_for_update()
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError(resource="project", resource_id=str(project_id))
        return project

    async def _next_timestamp(self, db: AsyncSession, project_id: UUID) -> datetime:
        """
        Current instant, nudged past the project's newest record if needed.

        Keeps the newest record's created_at strictly greatest even when
        application clocks disagree or two commits share a clock tick.
        Runs under the project row lock.
        """
        now = utc_now()
        result = await db.execute(
            select(func.max(PhaseTransition.created_at)).where(
                PhaseTransition.project_id == project_id
            )
        )
        # max() keeps the column type, so this comes back UTC-aware
        latest = result.scalar()
        if latest is not None and latest >= now:
            return latest + timedelta(microseconds=1)
        return now


# ── Singleton Instance ────────────────────────────────────────────────────
lifecycle_service = LifecycleService()
