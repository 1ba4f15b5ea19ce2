"""
Vehicle database model.

Vehicle status doubles as the assignment eligibility flag: only AVAILABLE
vehicles can be assigned, and ASSIGNED is set exclusively by the
assignment ledger.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base
from fleet_backend.app.models.enums import VehicleStatus, db_enum


class Vehicle(Base):
    __tablename__ = "vehicles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Tenant
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # Identification
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    vin = Column(String(50), nullable=True)
    license_plate = Column(String(50), nullable=True)
    mileage = Column(Integer, nullable=True)
    
    status = Column(
        db_enum(VehicleStatus, "vehicle_status"),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', company_id={self.company_id}, status='{self.status}')>"
