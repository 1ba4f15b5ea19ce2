"""
Driver document API endpoints.

The API registers documents and hands out signed storage URLs; file bytes
never pass through it.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.document import Document
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.schemas.document import (
    DocumentUploadRequest, DocumentResponse, DocumentUploadResponse,
    DocumentDownloadResponse, DocumentListResponse
)
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.services.document_lifecycle import DocumentLifecycle
from fleet_backend.app.services.storage import StorageCapability, get_storage

router = APIRouter(tags=["Documents"])


def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    storage: StorageCapability = Depends(get_storage),
) -> DocumentLifecycle:
    return DocumentLifecycle(db, storage)


def _to_response(lifecycle: DocumentLifecycle, document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        driver_id=document.driver_id,
        company_id=document.company_id,
        file_name=document.file_name,
        file_type=document.file_type,
        file_size=document.file_size,
        document_type=document.document_type,
        expiry_date=document.expiry_date,
        status=lifecycle.status_of(document),
        uploaded_by=document.uploaded_by,
        uploaded_at=document.uploaded_at,
    )


@router.post(
    "/documents/upload-url",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED
)
async def request_upload_url(
    request: DocumentUploadRequest,
    caller: Optional[Profile] = Depends(get_caller),
    lifecycle: DocumentLifecycle = Depends(get_lifecycle)
):
    """
    Register a document for an active driver and return a signed upload URL.
    
    The client uploads the file directly to storage with that URL.
    """
    document, upload_url = await lifecycle.request_upload(
        caller,
        driver_id=request.driver_id,
        filename=request.filename,
        content_type=request.content_type,
        size=request.size,
        document_type=request.document_type,
        expiry_date=request.expiry_date,
    )
    return DocumentUploadResponse(document=_to_response(lifecycle, document), upload_url=upload_url)


@router.get("/drivers/{driver_id}/documents", response_model=DocumentListResponse)
async def list_driver_documents(
    driver_id: int = Path(..., description="Driver ID"),
    caller: Optional[Profile] = Depends(get_caller),
    lifecycle: DocumentLifecycle = Depends(get_lifecycle)
):
    documents = await lifecycle.list_for_driver(caller, driver_id)
    return DocumentListResponse(
        documents=[_to_response(lifecycle, d) for d in documents],
        total=len(documents),
    )


@router.get("/documents/{document_id}", response_model=DocumentDownloadResponse)
async def get_document(
    document_id: int = Path(..., description="Document ID"),
    caller: Optional[Profile] = Depends(get_caller),
    lifecycle: DocumentLifecycle = Depends(get_lifecycle)
):
    """Document details with a short-lived download URL."""
    document, url = await lifecycle.get_document(caller, document_id)
    return DocumentDownloadResponse(document=_to_response(lifecycle, document), url=url)


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: int = Path(..., description="Document ID"),
    caller: Optional[Profile] = Depends(get_caller),
    lifecycle: DocumentLifecycle = Depends(get_lifecycle)
):
    await lifecycle.delete_document(caller, document_id)
    return {"message": "Document deleted successfully"}
