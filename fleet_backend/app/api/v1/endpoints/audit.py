"""
Audit trail API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.schemas.audit import AuditLogResponse, AuditLogListResponse
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.core.guards import authorization_guard, scoped_company_id
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    company_id: Optional[int] = Query(None, description="Defaults to the caller's company"),
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    entity_id: Optional[int] = Query(None, description="Filter by entity ID"),
    limit: int = Query(100, ge=1, le=500),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail of a company, most recent first."""
    target_company_id = scoped_company_id(caller, company_id)
    authorization_guard.enforce(caller, Permission.AUDIT_READ, target_company_id)
    
    logs = await get_audit_trail(
        db,
        company_id=target_company_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        limit=limit,
    )
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs),
    )
