"""
Role capability table.
"""

from enum import Enum
from typing import Dict, FrozenSet, List

from services.exceptions import PermissionDeniedError
from services.store_service.models import Role, User


class Capability(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_CATALOG = "view_catalog"
    MANAGE_ALLOCATIONS = "manage_allocations"
    MANAGE_USERS = "manage_users"
    CREATE_LAB = "create_lab"
    EDIT_LAB = "edit_lab"
    WORK_ON_LABS = "work_on_labs"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_CATALOG,
        Capability.MANAGE_ALLOCATIONS,
        Capability.MANAGE_USERS,
    }),
    Role.CREATOR: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_CATALOG,
        Capability.CREATE_LAB,
        Capability.EDIT_LAB,
    }),
    Role.STUDENT: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_CATALOG,
        Capability.WORK_ON_LABS,
    }),
}

# Navigation views in menu order, each gated by one capability
VIEW_CAPABILITIES = [
    ("dashboard", Capability.VIEW_DASHBOARD),
    ("catalog", Capability.VIEW_CATALOG),
    ("allocations", Capability.MANAGE_ALLOCATIONS),
    ("users", Capability.MANAGE_USERS),
    ("create-lab", Capability.CREATE_LAB),
]


def has_capability(role: Role, capability: Capability) -> bool:
    return Capability(capability) in ROLE_CAPABILITIES.get(Role(role), frozenset())


def require_capability(user: User, capability: Capability):
    """Raise PermissionDeniedError unless the user's role grants `capability`"""
    if not has_capability(user.role, capability):
        raise PermissionDeniedError(
            f"{user.role.value} '{user.user_id}' cannot {Capability(capability).value}"
        )


def available_views(role: Role) -> List[str]:
    """Navigation views a role may open, in menu order"""
    return [view for view, capability in VIEW_CAPABILITIES if has_capability(role, capability)]
