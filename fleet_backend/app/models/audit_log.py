"""
Audit Log Database Model.

Records every tenant-visible mutation (assignments, documents, profile
changes, fleet records) for compliance review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Rows are written in the same transaction as the change they describe,
    so a rolled back mutation leaves no audit entry behind.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)

    # Tenant the affected entity belongs to
    company_id = Column(Integer, index=True, nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # Affected entity, e.g. ("assignment", 12)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_id}, entity={self.entity_type}:{self.entity_id})>"
