"""
Driver database model.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base
from fleet_backend.app.models.enums import DriverStatus, db_enum


class Driver(Base):
    """
    Driver model.
    
    current_assignment_id points at the driver's active assignment, if any.
    It is maintained by the assignment ledger only and deliberately carries
    no foreign key (assignments reference drivers, not the other way round).
    """
    __tablename__ = "drivers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    license_number = Column(String(100), nullable=True)
    license_expiry = Column(Date, nullable=True)
    
    status = Column(
        db_enum(DriverStatus, "driver_status"),
        default=DriverStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    current_assignment_id = Column(Integer, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
    
    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}', company_id={self.company_id}, status='{self.status}')>"
