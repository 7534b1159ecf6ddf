"""
Waterfall Manager Backend — Project Service
============================================

What:  The small project surface the lifecycle engine needs around it:
       create a project, fetch one, list them.
How:   Role check through the authorization gate, business-rule checks,
       then a single-row write committed through `atomic()`.
Who:   Called by the project route handlers.

New projects start at Phase.PROPOSAL with status PLANNING. After creation
only LifecycleService moves `current_phase`; nothing here touches it.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import atomic
from app.exceptions import NotFoundError, StorageError, ValidationError
from app.models.phases import Phase, ProjectStatus
from app.models.project import Project
from app.models.types import utc_now
from app.schemas.project import ProjectCreate, ProjectListResponse, ProjectResponse
from app.services.auth_service import Identity
from app.services.authorization import CREATE_PROJECT, require

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes from clients are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProjectService:
    """Project creation, lookup and listing. Phase changes go through LifecycleService."""

    async def create_project(
        self,
        db: AsyncSession,
        payload: ProjectCreate,
        actor: Identity,
    ) -> ProjectResponse:
        """
        Create a project in phase Proposal.

        Raises:
            ValidationError: end_date not after start_date, or negative budget
            AuthorizationError: actor is not Admin/ProjectManager
            StorageError: insert failed
        """
        start_date = _as_utc(payload.start_date)
        end_date = _as_utc(payload.end_date)
        if end_date <= start_date:
            raise ValidationError(message="End date must be after start date", field="end_date")
        if payload.budget < Decimal("0"):
            raise ValidationError(message="Budget must be non-negative", field="budget")

        require(actor.role, CREATE_PROJECT)

        now = utc_now()
        project = Project(
            name=payload.name,
            description=payload.description,
            start_date=start_date,
            end_date=end_date,
            budget=payload.budget,
            client_id=payload.client_id,
            status=ProjectStatus.PLANNING,
            current_phase=Phase.PROPOSAL,
            created_at=now,
            updated_at=now,
        )
        try:
            async with atomic(db):
                db.add(project)
                await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating project: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not create the project. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Project %s created by %s", project.id, actor.user_id)
        return ProjectResponse.model_validate(project)

    async def get_project(self, db: AsyncSession, project_id: UUID) -> ProjectResponse:
        try:
            result = await db.execute(select(Project).where(Project.id == project_id))
            project = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching project %s: %s", project_id, str(e))
            raise StorageError(
                message="Could not retrieve the project. Please try again.",
                context={"project_id": str(project_id)},
            ) from e

        if project is None:
            raise NotFoundError(resource="project", resource_id=str(project_id))
        return ProjectResponse.model_validate(project)

    async def list_projects(
        self,
        db: AsyncSession,
        limit: int = 20,
        offset: int = 0,
    ) -> ProjectListResponse:
        """Newest projects first, with the overall count."""
        try:
            result = await db.execute(
                select(Project).order_by(desc(Project.created_at)).limit(limit).offset(offset)
            )
            projects = list(result.scalars().all())
            count_result = await db.execute(select(func.count(Project.id)))
            total_count = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing projects: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not retrieve projects. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        return ProjectListResponse(
            projects=[ProjectResponse.model_validate(p) for p in projects],
            total_count=total_count,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
project_service = ProjectService()
