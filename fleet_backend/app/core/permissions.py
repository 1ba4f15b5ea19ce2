"""
Permission catalog.

Each permission follows the pattern `resource:action`. A role maps to a
fixed base set; a profile's effective set is that base set plus any explicit
grants stored on the profile. Grants only add, nothing revokes.

The role table is validated when this module is imported, so a role without
an entry stops the application at startup instead of failing a request.
"""

import enum
from typing import Dict, FrozenSet, Iterable, Optional

from fleet_backend.app.models.enums import Role


class Permission(str, enum.Enum):
    # Companies
    COMPANIES_READ = "companies:read"
    COMPANIES_UPDATE = "companies:update"

    # Profiles (users of a company)
    PROFILES_READ = "profiles:read"
    PROFILES_CREATE = "profiles:create"
    PROFILES_UPDATE = "profiles:update"          # role, grants, active flag

    # Vehicles
    VEHICLES_READ = "vehicles:read"
    VEHICLES_CREATE = "vehicles:create"
    VEHICLES_UPDATE = "vehicles:update"
    VEHICLES_DELETE = "vehicles:delete"

    # Drivers
    DRIVERS_READ = "drivers:read"
    DRIVERS_CREATE = "drivers:create"
    DRIVERS_UPDATE = "drivers:update"
    DRIVERS_DELETE = "drivers:delete"

    # Assignments
    ASSIGNMENTS_READ = "assignments:read"
    ASSIGNMENTS_CREATE = "assignments:create"
    ASSIGNMENTS_END = "assignments:end"

    # Driver documents
    DOCUMENTS_READ = "documents:read"
    DOCUMENTS_CREATE = "documents:create"
    DOCUMENTS_DELETE = "documents:delete"

    # Audit trail
    AUDIT_READ = "audit:read"


ALL_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in Permission)


def _of_resource(*resources: str) -> FrozenSet[str]:
    return frozenset(p for p in ALL_PERMISSIONS if p.split(":", 1)[0] in resources)


ROLE_PERMISSIONS: Dict[Role, FrozenSet[str]] = {
    Role.ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: frozenset({
        Permission.COMPANIES_READ.value,
        Permission.PROFILES_READ.value,
    }) | _of_resource("vehicles", "drivers", "assignments", "documents"),
    Role.DISPATCHER: frozenset({
        Permission.COMPANIES_READ.value,
        Permission.VEHICLES_READ.value,
        Permission.VEHICLES_UPDATE.value,
        Permission.DRIVERS_READ.value,
        Permission.DRIVERS_UPDATE.value,
        Permission.DOCUMENTS_READ.value,
        Permission.DOCUMENTS_CREATE.value,
    }) | _of_resource("assignments"),
    Role.USER: frozenset({
        Permission.COMPANIES_READ.value,
        Permission.VEHICLES_READ.value,
        Permission.DRIVERS_READ.value,
        Permission.ASSIGNMENTS_READ.value,
        Permission.DOCUMENTS_READ.value,
    }),
}


def validate_catalog(table: Dict[Role, FrozenSet[str]] = ROLE_PERMISSIONS) -> None:
    """
    Check the role table is complete and only names known permissions.

    Raises:
        RuntimeError: on any configuration problem
    """
    missing = [role.value for role in Role if role not in table]
    if missing:
        raise RuntimeError(f"Permission catalog has no entry for roles: {', '.join(missing)}")

    for role, permissions in table.items():
        if not isinstance(role, Role):
            raise RuntimeError(f"Permission catalog contains unknown role {role!r}")
        unknown = set(permissions) - ALL_PERMISSIONS
        if unknown:
            raise RuntimeError(
                f"Permission catalog grants unknown permissions to {role.value}: {sorted(unknown)}"
            )


def base_permissions(role: Role) -> FrozenSet[str]:
    """Base permission set of a role."""
    return ROLE_PERMISSIONS[Role(role)]


def effective_permissions(role: Role, explicit_grants: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """
    Base permissions of the role united with the profile's explicit grants.

    Args:
        role: Profile role
        explicit_grants: Extra permission tokens stored on the profile

    Returns:
        Frozen set of permission tokens
    """
    return base_permissions(role) | frozenset(explicit_grants or ())


def unknown_permissions(tokens: Iterable[str]) -> list[str]:
    """Tokens that are not part of the catalog, in input order."""
    return [token for token in tokens if token not in ALL_PERMISSIONS]


validate_catalog()
