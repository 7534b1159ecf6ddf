"""
Waterfall Manager Backend — Authorization Gate
===============================================

What:  Pure role → operation allow/deny decision.
How:   A static table of which roles may perform which operation. No I/O,
       no state; `require()` turns a denial into AuthorizationError.
Who:   LifecycleService and ProjectService, before any persistence.

Policy:
    transition_phase       Admin, ProjectManager
    create_project         Admin, ProjectManager
    read_phase_record      every role
    read_project_history   every role
    read_project           every role
    anything else          nobody
"""

from typing import Dict, FrozenSet

from app.exceptions import AuthorizationError
from app.models.phases import Role

TRANSITION_PHASE = "transition_phase"
CREATE_PROJECT = "create_project"
READ_PHASE_RECORD = "read_phase_record"
READ_PROJECT_HISTORY = "read_project_history"
READ_PROJECT = "read_project"

_MANAGERS: FrozenSet[Role] = frozenset({Role.ADMIN, Role.PROJECT_MANAGER})
_EVERYONE: FrozenSet[Role] = frozenset(Role)

POLICY: Dict[str, FrozenSet[Role]] = {
    TRANSITION_PHASE: _MANAGERS,
    CREATE_PROJECT: _MANAGERS,
    READ_PHASE_RECORD: _EVERYONE,
    READ_PROJECT_HISTORY: _EVERYONE,
    READ_PROJECT: _EVERYONE,
}


def allow(role: Role, operation: str) -> bool:
    """True when `role` may perform `operation`. Unknown operations are denied."""
    return role in POLICY.get(operation, frozenset())


def require(role: Role, operation: str) -> None:
    """Raise AuthorizationError unless `role` may perform `operation`."""
    if not allow(role, operation):
        raise AuthorizationError(operation=operation, role=role.api_name)
