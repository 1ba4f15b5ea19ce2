"""
Assignment database model.

Links one driver to one vehicle for a period of time. Rows are an audit
record: they are created active, may be ended once, and are never deleted.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base
from fleet_backend.app.models.enums import AssignmentStatus, db_enum


ACTIVE_ONLY = text("status = 'active'")


class Assignment(Base):
    """
    Driver to vehicle assignment.
    
    Partial unique indexes allow at most one active row per driver and per
    vehicle. They are what resolves two concurrent creates, so both are
    declared for PostgreSQL and SQLite.
    end_date is set if and only if status is ENDED.
    """
    __tablename__ = "assignments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    
    status = Column(
        db_enum(AssignmentStatus, "assignment_status"),
        default=AssignmentStatus.ACTIVE,
        nullable=False,
    )
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    
    # Actors (profile ids)
    assigned_by = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    ended_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    
    notes = Column(Text, nullable=True)
    end_notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    __table_args__ = (
        Index(
            "ix_assignments_active_driver", "driver_id", unique=True,
            postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY,
        ),
        Index(
            "ix_assignments_active_vehicle", "vehicle_id", unique=True,
            postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY,
        ),
    )
    
    def __repr__(self):
        return f"<Assignment(id={self.id}, driver_id={self.driver_id}, vehicle_id={self.vehicle_id}, status='{self.status}')>"
