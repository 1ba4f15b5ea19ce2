"""
Driver document schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional
from fleet_backend.app.models.enums import DocumentStatus


class DocumentUploadRequest(BaseModel):
    """Schema for requesting an upload target for a driver document."""
    driver_id: int
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=255)
    size: Optional[int] = Field(None, ge=1, description="File size in bytes")
    document_type: Optional[str] = Field(None, max_length=100, description="e.g. license, insurance, medical")
    expiry_date: Optional[date] = None


class DocumentResponse(BaseModel):
    id: int
    driver_id: int
    company_id: int
    file_name: str
    file_type: str
    file_size: Optional[int]
    document_type: str
    expiry_date: Optional[datetime]
    status: DocumentStatus
    uploaded_by: int
    uploaded_at: datetime


class DocumentUploadResponse(BaseModel):
    document: DocumentResponse
    upload_url: str


class DocumentDownloadResponse(BaseModel):
    document: DocumentResponse
    url: str


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse]
    total: int
