"""
Audit logging service.

Audit rows are added to the caller's session and committed together with
the mutation they describe. log_event never commits on its own.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleet_backend.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    COMPANY_CREATED = "COMPANY_CREATED"
    COMPANY_UPDATED = "COMPANY_UPDATED"

    PROFILE_CREATED = "PROFILE_CREATED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    PROFILE_DEACTIVATED = "PROFILE_DEACTIVATED"

    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_DEACTIVATED = "VEHICLE_DEACTIVATED"

    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_DEACTIVATED = "DRIVER_DEACTIVATED"

    ASSIGNMENT_CREATED = "ASSIGNMENT_CREATED"
    ASSIGNMENT_ENDED = "ASSIGNMENT_ENDED"

    DOCUMENT_UPLOAD_REQUESTED = "DOCUMENT_UPLOAD_REQUESTED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"


def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    company_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Stage an audit event in the current transaction.

    Args:
        db: Database session holding the mutation being audited
        action: Action being performed (use AuditAction constants)
        actor_id: Profile id of the user performing the action
        company_id: Company the affected entity belongs to
        entity_type: Kind of entity, e.g. "assignment"
        entity_id: Id of the entity
        metadata: Additional context as JSON

    Returns:
        The pending AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        company_id=company_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )
    db.add(audit_log)
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    company_id: int,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve the audit trail of a company, most recent first.

    Args:
        db: Database session
        company_id: Company to read
        action: Filter by action type
        entity_type: Filter by entity kind
        entity_id: Filter by entity id (with entity_type)
        limit: Maximum number of records to return
    """
    query = select(AuditLog).where(AuditLog.company_id == company_id)

    if action:
        query = query.where(AuditLog.action == action)

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    query = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
