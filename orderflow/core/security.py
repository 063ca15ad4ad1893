"""
Caller Identity & Capability Checks

Authentication and sessions live outside this service. An upstream gateway
resolves the staff session and forwards the result as trusted headers:

    X-Staff-Role: manager | chef | server | kitchen_staff
    X-Staff-User: <username>

Routes turn those headers into a ``Caller`` and hand it to the core services,
which decide for themselves whether the caller holds the needed capability.
Nothing in the core reads request state or globals to find the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Header

from orderflow.core.errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


class StaffRole(str, Enum):
    MANAGER = "manager"
    CHEF = "chef"
    SERVER = "server"
    KITCHEN_STAFF = "kitchen_staff"


class Capability(str, Enum):
    """Operations gated by staff role."""
    ORDERS_CREATE = "orders:create"
    ORDERS_READ = "orders:read"
    ORDERS_UPDATE_STATUS = "orders:update_status"
    ORDERS_SCHEDULE = "orders:schedule"
    TABLES_READ = "tables:read"
    TABLES_MANAGE = "tables:manage"
    TABLES_OCCUPANCY = "tables:occupancy"
    CUSTOMERS = "customers"


ALL_STAFF = frozenset(StaffRole)
KITCHEN_ROLES = frozenset({StaffRole.MANAGER, StaffRole.CHEF, StaffRole.KITCHEN_STAFF})

# None means open to anonymous callers (customers).
CAPABILITY_ROLES: dict[Capability, Optional[frozenset[StaffRole]]] = {
    Capability.ORDERS_CREATE: None,
    Capability.ORDERS_READ: KITCHEN_ROLES,
    Capability.ORDERS_UPDATE_STATUS: KITCHEN_ROLES,
    Capability.ORDERS_SCHEDULE: ALL_STAFF,
    Capability.TABLES_READ: frozenset({StaffRole.MANAGER, StaffRole.CHEF, StaffRole.SERVER}),
    Capability.TABLES_MANAGE: frozenset({StaffRole.MANAGER}),
    Capability.TABLES_OCCUPANCY: frozenset({StaffRole.MANAGER, StaffRole.SERVER}),
    Capability.CUSTOMERS: None,
}


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issued the current request."""
    role: Optional[StaffRole] = None
    username: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.role is not None

    def __str__(self) -> str:
        if not self.is_authenticated:
            return "anonymous"
        return f"{self.username or 'unknown'} ({self.role.value})"


ANONYMOUS = Caller()


def authorize(caller: Caller, capability: Capability) -> None:
    """
    Check that ``caller`` may perform ``capability``.

    Raises:
        UnauthorizedError: Capability needs a staff session and there is none
        ForbiddenError: Staff role is not on the allow-list
    """
    allowed = CAPABILITY_ROLES[capability]
    if allowed is None:
        return

    if not caller.is_authenticated:
        raise UnauthorizedError("Authentication required")

    if caller.role not in allowed:
        logger.warning(f"{caller} denied {capability.value}")
        raise ForbiddenError(
            "Insufficient permissions",
            details={
                "capability": capability.value,
                "requiredRoles": sorted(r.value for r in allowed),
            },
        )


async def get_caller(
    x_staff_role: Optional[str] = Header(None, alias="X-Staff-Role"),
    x_staff_user: Optional[str] = Header(None, alias="X-Staff-User"),
) -> Caller:
    """
    FastAPI dependency resolving the caller from gateway headers.

    An absent role yields an anonymous caller; an unrecognised one is
    treated as an invalid session.
    """
    if not x_staff_role:
        return ANONYMOUS

    try:
        role = StaffRole(x_staff_role.strip().lower())
    except ValueError:
        raise UnauthorizedError(
            "Unknown staff role",
            details={"role": x_staff_role, "validRoles": [r.value for r in StaffRole]},
        )

    return Caller(role=role, username=x_staff_user)
