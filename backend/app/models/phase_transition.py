"""
Waterfall Manager Backend — Phase Transition (Audit Ledger) Model
==================================================================

What:  ORM model for the `phase_transitions` table, the append-only audit
       trail of lifecycle changes.
How:   One row per successful transition, written by LifecycleService inside
       the same transaction that moves `projects.current_phase`.
Who:   Written by LifecycleService.transition; read by get_record/get_history.

Lifecycle:
    Inserted exactly once per successful transition. Never updated, never
    deleted by this application. `updated_at` equals `created_at`.

Query Patterns:
    - Single record:  SELECT ... WHERE id = :id           (primary key)
    - History:        SELECT ... WHERE project_id = :pid
                      ORDER BY created_at ASC             (ix_phase_transitions_project_created)
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.phases import Phase
from app.models.types import PhaseType, UTCDateTime, utc_now


class PhaseTransition(Base):
    """A single committed phase change for a project."""

    __tablename__ = "phase_transitions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id"),
        nullable=False,
    )

    phase: Mapped[Phase] = mapped_column(PhaseType, nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Opaque references (file names, URIs) in submission order; NULL when
    # none were supplied
    attachments: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # Acting user's id. Users live outside this service, so no foreign key.
    approved_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
    )

    __table_args__ = (
        Index("ix_phase_transitions_project_created", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PhaseTransition(id={self.id}, project_id={self.project_id}, "
            f"phase={self.phase.api_name if self.phase else None})>"
        )
