"""
Waterfall Manager Backend — Custom Column Types
================================================

What:  SQLAlchemy TypeDecorators that persist the lifecycle enums by their
       storage names and keep timestamps UTC-aware on every backend.
How:   process_bind_param converts Python → DB, process_result_value
       converts DB → Python.

    PhaseType          Phase.REQUIREMENTS ↔ 'requirements'   (VARCHAR(32))
    ProjectStatusType  ProjectStatus.PLANNING ↔ 'planning'   (VARCHAR(32))
    UTCDateTime        aware datetime ↔ TIMESTAMP WITH TIME ZONE

SQLite drops tzinfo on read; UTCDateTime reattaches UTC so serialized
timestamps look the same in tests and in production.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator

from app.models.phases import Phase, ProjectStatus


class PhaseType(TypeDecorator):
    """Stores a Phase by its storage name."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, Phase):
            return value.storage_name
        # Raw strings must already be a known storage name
        return Phase.from_storage(value).storage_name

    def process_result_value(self, value, dialect) -> Optional[Phase]:
        if value is None:
            return None
        return Phase.from_storage(value)


class ProjectStatusType(TypeDecorator):
    """Stores a ProjectStatus by its storage name."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, ProjectStatus):
            return value.storage_name
        return ProjectStatus.from_storage(value).storage_name

    def process_result_value(self, value, dialect) -> Optional[ProjectStatus]:
        if value is None:
            return None
        return ProjectStatus.from_storage(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            # Naive values are taken to be UTC already
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current instant, UTC-aware. Patched in tests that pin time."""
    return datetime.now(timezone.utc)
