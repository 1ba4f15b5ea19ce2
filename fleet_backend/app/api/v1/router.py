"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleet_backend.app.api.v1.endpoints import (
    auth, companies, profiles,
    vehicles, drivers, assignments,
    documents, audit
)

router = APIRouter()

# Authentication and tenancy
router.include_router(auth.router)
router.include_router(companies.router)
router.include_router(profiles.router)

# Fleet
router.include_router(vehicles.router)
router.include_router(drivers.router)
router.include_router(assignments.router)

# Driver documents
router.include_router(documents.router)

# Audit trail
router.include_router(audit.router)
