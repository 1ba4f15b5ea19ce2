"""
Authorization guard for permission and tenant (company) access control.

authorize() is the one decision function for every read and write in the
API. It is pure: it looks at the caller profile, the requested permission
and the company that owns the resource, and returns a Decision. enforce()
wraps it for endpoints and services, raising the matching application error
and logging the reason for audit.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union

from fleet_backend.app.core.exceptions import (
    AuthenticationError,
    CrossTenantAccessError,
    DriverInactiveError,
    InsufficientPermissionsError,
)
from fleet_backend.app.core.permissions import Permission, effective_permissions
from fleet_backend.app.models.enums import Role

logger = logging.getLogger(__name__)


class DenialReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    CROSS_TENANT_ACCESS = "cross_tenant_access"
    DRIVER_INACTIVE = "driver_inactive"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check: allowed, or denied with a reason."""
    allowed: bool
    reason: Optional[DenialReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(allowed=True)


def denied(reason: DenialReason) -> Decision:
    return Decision(allowed=False, reason=reason)


_DENIAL_ERRORS = {
    DenialReason.UNAUTHENTICATED: AuthenticationError,
    DenialReason.INSUFFICIENT_PERMISSION: InsufficientPermissionsError,
    DenialReason.CROSS_TENANT_ACCESS: CrossTenantAccessError,
    DenialReason.DRIVER_INACTIVE: DriverInactiveError,
}


def _token(action: Union[Permission, str]) -> str:
    return action.value if isinstance(action, Permission) else action


class AuthorizationGuard:
    """
    Permission and tenant guard.

    Usage:
        authorization_guard.enforce(caller, Permission.VEHICLES_DELETE, vehicle.company_id)

    caller is a Profile (or anything with role, explicit_permissions,
    company_id and is_active); None means the request carries no usable
    session.
    """

    def authenticate(self, caller) -> Decision:
        """Step one of authorize(): a present, active profile."""
        if caller is None or not caller.is_active:
            return denied(DenialReason.UNAUTHENTICATED)
        return ALLOWED

    def require_session(self, caller) -> None:
        """For endpoints that need a session but no permission (sign-out, /me)."""
        self.raise_for(self.authenticate(caller), caller, "session")

    def authorize(
        self,
        caller,
        action: Union[Permission, str],
        resource_company_id: Optional[int] = None,
        allow_cross_tenant: bool = True,
    ) -> Decision:
        """
        Decide whether caller may perform action on a resource of a company.

        Args:
            caller: Caller profile, or None when unauthenticated
            action: Permission token (`resource:action`)
            resource_company_id: Company owning the resource; None skips the tenant check
            allow_cross_tenant: Whether admins may act on other companies

        Returns:
            ALLOWED, or a denied Decision carrying the reason
        """
        session = self.authenticate(caller)
        if not session.allowed:
            return session

        permissions = effective_permissions(caller.role, caller.explicit_permissions)
        if _token(action) not in permissions:
            return denied(DenialReason.INSUFFICIENT_PERMISSION)

        if resource_company_id is not None and resource_company_id != caller.company_id:
            # Admins may cross company boundaries, an explicit escalation path
            if allow_cross_tenant and Role(caller.role) == Role.ADMIN:
                return ALLOWED
            return denied(DenialReason.CROSS_TENANT_ACCESS)

        return ALLOWED

    def enforce(
        self,
        caller,
        action: Union[Permission, str],
        resource_company_id: Optional[int] = None,
        allow_cross_tenant: bool = True,
    ) -> None:
        """
        Authorize and raise on denial.

        Raises:
            AuthenticationError: no session or inactive profile
            InsufficientPermissionsError: permission missing from effective set
            CrossTenantAccessError: resource belongs to another company
        """
        decision = self.authorize(caller, action, resource_company_id, allow_cross_tenant)
        self.raise_for(decision, caller, action, resource_company_id)

    def raise_for(
        self,
        decision: Decision,
        caller,
        action: Union[Permission, str],
        resource_company_id: Optional[int] = None,
    ) -> None:
        """Log and raise the error matching a denied decision; no-op when allowed."""
        if decision.allowed:
            return

        logger.warning(
            "Access denied: reason=%s action=%s caller_id=%s caller_company_id=%s resource_company_id=%s",
            decision.reason.value,
            _token(action),
            getattr(caller, "id", None),
            getattr(caller, "company_id", None),
            resource_company_id,
        )
        raise _DENIAL_ERRORS[decision.reason]()


def scoped_company_id(caller, requested_company_id: Optional[int] = None) -> Optional[int]:
    """
    Company a list or create request targets: the requested one, else the caller's.

    The result still has to pass through authorize(); this only picks the
    default.
    """
    if requested_company_id is not None:
        return requested_company_id
    return getattr(caller, "company_id", None)


authorization_guard = AuthorizationGuard()
