"""
Waterfall Manager Backend — Shared Schemas and Field Types
===========================================================

What:  Pydantic field types for the lifecycle enums, plus the error and
       health response models shared by every route module.
How:   Annotated types pair a validator (API name → enum) with a serializer
       (enum → API name) and an explicit JSON schema, so OpenAPI shows
       the string names rather than enum internals.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, PlainSerializer, PlainValidator, WithJsonSchema

from app.models.phases import (
    PHASE_NAMES,
    PROJECT_STATUS_NAMES,
    Phase,
    ProjectStatus,
)


def _parse_phase(value: Any) -> Phase:
    if isinstance(value, Phase):
        return value
    if not isinstance(value, str):
        raise ValueError("phase must be a string")
    return Phase.from_name(value)


def _parse_status(value: Any) -> ProjectStatus:
    if isinstance(value, ProjectStatus):
        return value
    if not isinstance(value, str):
        raise ValueError("status must be a string")
    return ProjectStatus.from_name(value)


PhaseField = Annotated[
    Phase,
    PlainValidator(_parse_phase),
    PlainSerializer(lambda phase: phase.api_name, return_type=str),
    WithJsonSchema({"type": "string", "enum": PHASE_NAMES}),
]

ProjectStatusField = Annotated[
    ProjectStatus,
    PlainValidator(_parse_status),
    PlainSerializer(lambda status: status.api_name, return_type=str),
    WithJsonSchema({"type": "string", "enum": PROJECT_STATUS_NAMES}),
]


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "You are not allowed to perform 'transition_phase'",
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
