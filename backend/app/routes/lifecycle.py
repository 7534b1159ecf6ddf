"""
Waterfall Manager Backend — Lifecycle Route Handlers
=====================================================

What:  POST /api/lifecycle/transition, GET /api/lifecycle/phase/{record_id},
       GET /api/lifecycle/project/{project_id}.
How:   Resolve the caller's identity, delegate to LifecycleService, return JSON.
       Validation, authorization and storage errors are raised by the service
       and formatted by the global exception handlers.

Caching:
    - POST transition: never cached
    - GET phase/{id}: ledger records are immutable, long private cache
    - GET project/{id}: history grows with every transition, no-store
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.deps import get_current_identity
from app.schemas.common import ErrorResponse
from app.schemas.lifecycle import LedgerRecordResponse, TransitionRequest
from app.services.auth_service import Identity
from app.services.authorization import READ_PHASE_RECORD, READ_PROJECT_HISTORY, require
from app.services.lifecycle_service import lifecycle_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lifecycle", tags=["Lifecycle"])


@router.post(
    "/transition",
    response_model=LedgerRecordResponse,
    responses={
        200: {"description": "Transition committed", "model": LedgerRecordResponse},
        400: {"description": "Invalid request (e.g. empty description)", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        403: {"description": "Role may not transition phases", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="Move a project to a lifecycle phase",
    description=(
        "Records an audit entry and updates the project's current phase in one "
        "transaction. Only Admin and ProjectManager roles may call this."
    ),
)
async def transition_phase(
    request: TransitionRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> LedgerRecordResponse:
    return await lifecycle_service.transition(db=db, request=request, actor=identity)


@router.get(
    "/phase/{record_id}",
    response_model=LedgerRecordResponse,
    responses={
        200: {"description": "Ledger record", "model": LedgerRecordResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Record not found", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="Get one phase transition record",
)
async def get_phase_record(
    record_id: UUID,
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> LedgerRecordResponse:
    require(identity.role, READ_PHASE_RECORD)
    result = await lifecycle_service.get_record(db=db, record_id=record_id)
    response.headers["Cache-Control"] = "private, max-age=3600"
    return result


@router.get(
    "/project/{project_id}",
    response_model=List[LedgerRecordResponse],
    responses={
        200: {"description": "Ledger records, oldest first (may be empty)"},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
    summary="Get a project's lifecycle history",
)
async def get_project_lifecycle(
    project_id: UUID,
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> List[LedgerRecordResponse]:
    require(identity.role, READ_PROJECT_HISTORY)
    history = await lifecycle_service.get_history(db=db, project_id=project_id)
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Total-Count"] = str(len(history))
    return history
