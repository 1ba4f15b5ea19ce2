"""
Company API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.company import Company
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.schemas.company import CompanyUpdate, CompanyResponse
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.core.exceptions import ResourceNotFoundError
from fleet_backend.app.core.guards import authorization_guard
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/companies", tags=["Companies"])


async def _get_company(db: AsyncSession, company_id: int) -> Company:
    company = await db.get(Company, company_id)
    if not company:
        raise ResourceNotFoundError("Company", company_id)
    return company


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: int = Path(..., description="Company ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    company = await _get_company(db, company_id)
    authorization_guard.enforce(caller, Permission.COMPANIES_READ, company.id)
    return CompanyResponse.model_validate(company)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    update_data: CompanyUpdate,
    company_id: int = Path(..., description="Company ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Update company details (admin)."""
    company = await _get_company(db, company_id)
    authorization_guard.enforce(caller, Permission.COMPANIES_UPDATE, company.id)
    
    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(company, field, value)
    
    log_event(
        db,
        action=AuditAction.COMPANY_UPDATED,
        actor_id=caller.id,
        company_id=company.id,
        entity_type="company",
        entity_id=company.id,
        metadata={"fields": sorted(changes)},
    )
    await db.commit()
    await db.refresh(company)
    
    return CompanyResponse.model_validate(company)
