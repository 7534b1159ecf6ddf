"""
Waterfall Manager Backend — Project Route Handlers
===================================================

What:  POST /api/projects, GET /api/projects, GET /api/projects/{project_id}.
How:   Thin handlers over ProjectService.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.deps import get_current_identity
from app.schemas.common import ErrorResponse
from app.schemas.project import ProjectCreate, ProjectListResponse, ProjectResponse
from app.services.auth_service import Identity
from app.services.authorization import READ_PROJECT, require
from app.services.project_service import project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.post(
    "",
    status_code=201,
    response_model=ProjectResponse,
    responses={
        201: {"description": "Project created", "model": ProjectResponse},
        400: {"description": "Invalid project data", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        403: {"description": "Role may not create projects", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="Create a project",
)
async def create_project(
    payload: ProjectCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.create_project(db=db, payload=payload, actor=identity)


@router.get(
    "",
    response_model=ProjectListResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="List projects, newest first",
)
async def list_projects(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    offset: int = Query(default=0, ge=0, description="Items to skip"),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectListResponse:
    require(identity.role, READ_PROJECT)
    result = await project_service.list_projects(db=db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="Get a project, including its current phase",
)
async def get_project(
    project_id: UUID,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    require(identity.role, READ_PROJECT)
    return await project_service.get_project(db=db, project_id=project_id)
