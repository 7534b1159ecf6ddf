"""
Waterfall Manager Backend — Lifecycle Phases, Roles and Project Status
=======================================================================

What:  The tagged variants used by the lifecycle engine and its collaborators,
       each with explicit string mapping tables.
How:   Members carry no meaningful value; every external spelling comes from
       a table below. The API tables are what JSON bodies and token claims
       use; the storage tables are what the database columns hold.
Who:   Column types (app.models.types), API schemas, the authorization gate
       and the token authenticator.

Phase order is declaration order only. Nothing enforces it on transitions.
"""

import enum
from typing import Dict, List


class Phase(enum.Enum):
    """One named stage of a project's lifecycle."""

    PROPOSAL = enum.auto()
    REQUIREMENTS = enum.auto()
    DESIGN = enum.auto()
    IMPLEMENTATION = enum.auto()
    TESTING = enum.auto()
    DEPLOYMENT = enum.auto()
    MAINTENANCE = enum.auto()
    CLOSED = enum.auto()

    @property
    def api_name(self) -> str:
        return PHASE_API_NAMES[self]

    @property
    def storage_name(self) -> str:
        return PHASE_STORAGE_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> "Phase":
        """Parse an API name such as 'Requirements'. Raises ValueError."""
        try:
            return _PHASE_BY_API_NAME[name]
        except KeyError:
            raise ValueError(
                f"Unknown phase '{name}'. Must be one of: {', '.join(PHASE_NAMES)}"
            ) from None

    @classmethod
    def from_storage(cls, value: str) -> "Phase":
        try:
            return _PHASE_BY_STORAGE_NAME[value]
        except KeyError:
            raise ValueError(f"Unknown stored phase value '{value}'") from None


PHASE_API_NAMES: Dict[Phase, str] = {
    Phase.PROPOSAL: "Proposal",
    Phase.REQUIREMENTS: "Requirements",
    Phase.DESIGN: "Design",
    Phase.IMPLEMENTATION: "Implementation",
    Phase.TESTING: "Testing",
    Phase.DEPLOYMENT: "Deployment",
    Phase.MAINTENANCE: "Maintenance",
    Phase.CLOSED: "Closed",
}

PHASE_STORAGE_NAMES: Dict[Phase, str] = {
    Phase.PROPOSAL: "proposal",
    Phase.REQUIREMENTS: "requirements",
    Phase.DESIGN: "design",
    Phase.IMPLEMENTATION: "implementation",
    Phase.TESTING: "testing",
    Phase.DEPLOYMENT: "deployment",
    Phase.MAINTENANCE: "maintenance",
    Phase.CLOSED: "closed",
}

_PHASE_BY_API_NAME = {name: phase for phase, name in PHASE_API_NAMES.items()}
_PHASE_BY_STORAGE_NAME = {name: phase for phase, name in PHASE_STORAGE_NAMES.items()}

# API names in declaration order, for error messages and the OpenAPI schema
PHASE_NAMES: List[str] = [PHASE_API_NAMES[phase] for phase in Phase]


class Role(enum.Enum):
    """Role carried by an authenticated identity."""

    ADMIN = enum.auto()
    PROJECT_MANAGER = enum.auto()
    DEVELOPER = enum.auto()
    QA_ENGINEER = enum.auto()

    @property
    def api_name(self) -> str:
        return ROLE_API_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> "Role":
        try:
            return _ROLE_BY_API_NAME[name]
        except KeyError:
            raise ValueError(f"Unknown role '{name}'") from None


ROLE_API_NAMES: Dict[Role, str] = {
    Role.ADMIN: "Admin",
    Role.PROJECT_MANAGER: "ProjectManager",
    Role.DEVELOPER: "Developer",
    Role.QA_ENGINEER: "QaEngineer",
}

_ROLE_BY_API_NAME = {name: role for role, name in ROLE_API_NAMES.items()}


class ProjectStatus(enum.Enum):
    """
    Delivery status of a project.

    Independent of Phase: the lifecycle engine never reads or writes it.
    """

    PLANNING = enum.auto()
    DEVELOPMENT = enum.auto()
    TESTING = enum.auto()
    DEPLOYMENT = enum.auto()
    COMPLETED = enum.auto()

    @property
    def api_name(self) -> str:
        return PROJECT_STATUS_API_NAMES[self]

    @property
    def storage_name(self) -> str:
        return PROJECT_STATUS_API_NAMES[self].lower()

    @classmethod
    def from_name(cls, name: str) -> "ProjectStatus":
        try:
            return _STATUS_BY_API_NAME[name]
        except KeyError:
            raise ValueError(
                f"Unknown project status '{name}'. "
                f"Must be one of: {', '.join(PROJECT_STATUS_NAMES)}"
            ) from None

    @classmethod
    def from_storage(cls, value: str) -> "ProjectStatus":
        try:
            return _STATUS_BY_STORAGE_NAME[value]
        except KeyError:
            raise ValueError(f"Unknown stored project status '{value}'") from None


PROJECT_STATUS_API_NAMES: Dict[ProjectStatus, str] = {
    ProjectStatus.PLANNING: "Planning",
    ProjectStatus.DEVELOPMENT: "Development",
    ProjectStatus.TESTING: "Testing",
    ProjectStatus.DEPLOYMENT: "Deployment",
    ProjectStatus.COMPLETED: "Completed",
}

_STATUS_BY_API_NAME = {name: status for status, name in PROJECT_STATUS_API_NAMES.items()}
_STATUS_BY_STORAGE_NAME = {
    name.lower(): status for status, name in PROJECT_STATUS_API_NAMES.items()
}

PROJECT_STATUS_NAMES: List[str] = [PROJECT_STATUS_API_NAMES[s] for s in ProjectStatus]
