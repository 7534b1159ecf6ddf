"""
Waterfall Manager Backend — Project Request/Response Schemas
=============================================================

What:  API contract for the minimal project surface (create, get, list).
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import PhaseField, ProjectStatusField


class ProjectCreate(BaseModel):
    """
    Example:
        {
            "name": "ERP System Implementation",
            "start_date": "2025-01-06T00:00:00Z",
            "end_date": "2025-06-30T00:00:00Z",
            "budget": "150000.00"
        }
    """
    name: str = Field(min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(default=None, description="Free-form description")
    start_date: datetime = Field(description="Planned start (ISO 8601)")
    end_date: datetime = Field(description="Planned end, after start_date (ISO 8601)")
    budget: Decimal = Field(description="Non-negative budget")
    client_id: Optional[uuid.UUID] = Field(default=None, description="Owning client, if any")


class ProjectResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: ProjectStatusField = Field(description="Delivery status, independent of the phase")
    budget: Decimal
    client_id: Optional[uuid.UUID] = None
    current_phase: PhaseField = Field(description="Phase of the latest committed transition")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse] = Field(description="Page of projects, newest first")
    total_count: int = Field(description="Total number of projects")
