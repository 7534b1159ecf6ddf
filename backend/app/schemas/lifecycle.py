"""
Waterfall Manager Backend — Lifecycle Request/Response Schemas
===============================================================

What:  API contract for phase transitions and audit ledger reads.
Who:   Lifecycle routes (request parsing, response serialization) and
       LifecycleService (return type).

`description` carries no length constraint here: emptiness is a business
rule checked by the engine before authorization, so it surfaces as a 400
validation_error rather than a schema failure.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import PhaseField


class TransitionRequest(BaseModel):
    """
    What:  Input to POST /api/lifecycle/transition.

    Example:
        {
            "project_id": "550e8400-e29b-41d4-a716-446655440000",
            "phase": "Requirements",
            "description": "Requirements gathered and signed off",
            "attachments": ["srs-v1.pdf"]
        }
    """
    project_id: uuid.UUID = Field(description="Project to transition")
    phase: PhaseField = Field(description="Target lifecycle phase")
    description: str = Field(description="Why the project is moving (required, non-empty)")
    attachments: Optional[List[str]] = Field(
        default=None,
        description="Opaque references (file names, URIs) in submission order",
    )


class LedgerRecordResponse(BaseModel):
    """
    What:  One immutable audit record of a committed transition.
    Who:   Returned by every lifecycle endpoint.
    """
    id: uuid.UUID = Field(description="Ledger record identifier")
    project_id: uuid.UUID = Field(description="Project that transitioned")
    phase: PhaseField = Field(description="Phase the project moved to")
    description: str = Field(description="Reason supplied with the transition")
    attachments: Optional[List[str]] = Field(default=None, description="Attachment references")
    approved_by: uuid.UUID = Field(description="User who performed the transition")
    created_at: datetime = Field(description="When the transition was committed (UTC ISO 8601)")
    updated_at: datetime = Field(description="Equal to created_at; records are never modified")

    model_config = {"from_attributes": True}
