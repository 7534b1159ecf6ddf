"""
Waterfall Manager Backend — Project SQLAlchemy Model
=====================================================

What:  ORM model representing the `projects` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Created by ProjectService; `current_phase` is rewritten by LifecycleService.

Two independent progress fields live on a project:
    - status:         delivery status (Planning … Completed), set at creation
    - current_phase:  lifecycle pointer (Proposal … Closed), initialized to
                      Proposal and afterwards changed only by phase transitions
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.phases import Phase, ProjectStatus
from app.models.types import PhaseType, ProjectStatusType, UTCDateTime, utc_now


class Project(Base):
    """
    A project tracked through the waterfall lifecycle.

    Query Patterns:
        - Lock for a transition: SELECT ... WHERE id = :id FOR UPDATE
        - List recent projects:  SELECT ... ORDER BY created_at DESC
    """

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    status: Mapped[ProjectStatus] = mapped_column(
        ProjectStatusType,
        nullable=False,
        default=ProjectStatus.PLANNING,
    )

    budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    # ── Lifecycle pointer ─────────────────────────────────────────────────
    # Equals the phase of the most recently committed phase_transitions row
    # for this project (or Proposal before the first transition).
    current_phase: Mapped[Phase] = mapped_column(
        PhaseType,
        nullable=False,
        default=Phase.PROPOSAL,
    )

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
        Index("idx_projects_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Project(id={self.id}, name='{self.name}', "
            f"current_phase={self.current_phase.api_name if self.current_phase else None})>"
        )
