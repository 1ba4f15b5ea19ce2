"""
Enumerations shared by the fleet models.

Every status field in the system is a closed enumeration. Values are stored
in the database by their lowercase value, not the member name.
"""

import enum
from sqlalchemy import Enum


class Role(str, enum.Enum):
    """
    Profile role enumeration.

    Roles:
        ADMIN: Full access, may act across company boundaries
        MANAGER: Manages fleet, drivers and documents of one company
        DISPATCHER: Assigns vehicles to drivers
        USER: Read-only member of a company
    """
    ADMIN = "admin"
    MANAGER = "manager"
    DISPATCHER = "dispatcher"
    USER = "user"


class VehicleStatus(str, enum.Enum):
    """Vehicle status. Only AVAILABLE vehicles can be assigned."""
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out-of-service"
    INACTIVE = "inactive"


class DriverStatus(str, enum.Enum):
    """Driver status. Only ACTIVE drivers receive or hold assignments."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class AssignmentStatus(str, enum.Enum):
    ACTIVE = "active"
    ENDED = "ended"


class DocumentStatus(str, enum.Enum):
    """Derived on read from the expiry date, never stored."""
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


def db_enum(enum_cls: type, name: str) -> Enum:
    """Column type storing enum values (e.g. 'out-of-service') rather than names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
