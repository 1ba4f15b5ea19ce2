"""
Driver document database model.

Documents belong to a driver; company_id is copied from the driver when the
upload is registered. The validity status is derived from expiry_date on
read and is not a column.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base


class Document(Base):
    __tablename__ = "documents"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # File metadata; the bytes live in external storage under file_path
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), unique=True, nullable=False)
    file_type = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)
    
    document_type = Column(String(100), default="other", nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    
    uploaded_by = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Document(id={self.id}, driver_id={self.driver_id}, type='{self.document_type}')>"
