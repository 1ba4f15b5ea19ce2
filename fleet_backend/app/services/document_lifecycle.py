"""
Driver document lifecycle.

Two responsibilities:

- derive_status: the single place that turns an expiry date into
  valid / expiring_soon / expired. It is computed on every read; nothing
  stores it.
- gating: whether a caller may register, read or delete documents of a
  driver. Access goes through the authorization guard against the driver's
  company, and additionally requires the driver to be ACTIVE.

The upload itself is performed by the client against the target issued by
the storage capability.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Tuple, Union

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_backend.app.core.config import settings
from fleet_backend.app.core.exceptions import DocumentValidationError, ResourceNotFoundError
from fleet_backend.app.core.guards import (
    AuthorizationGuard,
    Decision,
    DenialReason,
    authorization_guard,
    denied,
)
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.models.document import Document
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.enums import DocumentStatus, DriverStatus
from fleet_backend.app.services.audit import AuditAction, log_event
from fleet_backend.app.services.storage import StorageCapability

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: DateLike) -> datetime:
    """
    Normalize to an aware UTC datetime.

    Plain dates mean midnight UTC; naive datetimes are taken to be UTC
    (SQLite hands timezone columns back naive).
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def derive_status(
    expiry: Optional[DateLike],
    now: Optional[DateLike] = None,
    warning_days: Optional[int] = None,
) -> DocumentStatus:
    """
    Validity of a document with the given expiry.

    expired if expiry < now, expiring_soon if expiry < now + warning window
    (30 days by default), valid otherwise. A document without an expiry
    date is valid.
    """
    if expiry is None:
        return DocumentStatus.VALID

    if warning_days is None:
        warning_days = settings.document_expiry_warning_days

    expiry = as_utc(expiry)
    now = as_utc(now) if now is not None else utcnow()

    if expiry < now:
        return DocumentStatus.EXPIRED
    if expiry < now + timedelta(days=warning_days):
        return DocumentStatus.EXPIRING_SOON
    return DocumentStatus.VALID


def build_file_path(driver_id: int, filename: str) -> str:
    """documents/{driver_id}/{uuid}.{ext}; the client filename is not reused."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"documents/{driver_id}/{uuid.uuid4()}.{extension}"


class DocumentLifecycle:
    """
    Document gating and bookkeeping.

    Usage:
        lifecycle = DocumentLifecycle(db, storage)
        document, upload_url = await lifecycle.request_upload(caller, driver_id, ...)
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageCapability,
        guard: AuthorizationGuard = authorization_guard,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.storage = storage
        self.guard = guard
        self.clock = clock

    def authorize_driver_documents(self, caller, action: Permission, driver: Driver) -> Decision:
        """Guard decision for `action` on the driver's company, then the active-driver rule."""
        decision = self.guard.authorize(caller, action, driver.company_id)
        if not decision.allowed:
            return decision
        if driver.status != DriverStatus.ACTIVE:
            return denied(DenialReason.DRIVER_INACTIVE)
        return decision

    def authorize_upload(self, caller, driver: Driver) -> Decision:
        return self.authorize_driver_documents(caller, Permission.DOCUMENTS_CREATE, driver)

    def status_of(self, document: Document) -> DocumentStatus:
        return derive_status(document.expiry_date, self.clock())

    async def request_upload(
        self,
        caller,
        driver_id: int,
        filename: str,
        content_type: str,
        size: Optional[int] = None,
        document_type: Optional[str] = None,
        expiry_date: Optional[DateLike] = None,
    ) -> Tuple[Document, str]:
        """
        Register a document and issue its upload target.

        Returns:
            (document record, signed upload URL)

        Raises:
            ResourceNotFoundError: driver does not exist
            AuthenticationError, InsufficientPermissionsError, CrossTenantAccessError
            DriverInactiveError: driver is not ACTIVE
            DocumentValidationError: unsupported content type or file too large
        """
        driver = await self._get_driver(driver_id)
        decision = self.authorize_upload(caller, driver)
        self.guard.raise_for(decision, caller, Permission.DOCUMENTS_CREATE, driver.company_id)

        if content_type not in settings.allowed_document_types:
            raise DocumentValidationError(
                "Invalid file type",
                details={"allowed_types": settings.allowed_document_types},
            )
        if size is not None and size > settings.max_upload_bytes:
            raise DocumentValidationError(
                "File size exceeds maximum allowed size",
                details={"max_size": settings.max_upload_bytes, "actual_size": size},
            )

        file_path = build_file_path(driver.id, filename)
        upload_url = await self.storage.issue_upload_target(file_path, content_type)

        document = Document(
            driver_id=driver.id,
            company_id=driver.company_id,
            file_name=filename,
            file_path=file_path,
            file_type=content_type,
            file_size=size,
            document_type=document_type or "other",
            expiry_date=as_utc(expiry_date) if expiry_date is not None else None,
            uploaded_by=caller.id,
        )
        self.db.add(document)
        await self.db.flush()
        log_event(
            self.db,
            action=AuditAction.DOCUMENT_UPLOAD_REQUESTED,
            actor_id=caller.id,
            company_id=driver.company_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"driver_id": driver.id, "document_type": document.document_type},
        )
        await self.db.commit()
        await self.db.refresh(document)

        logger.info("Document %s registered for driver %s", document.id, driver.id)
        return document, upload_url

    async def get_document(self, caller, document_id: int) -> Tuple[Document, str]:
        """
        Read a document and issue a download target.

        Returns:
            (document record, signed download URL)
        """
        document, driver = await self._get_document_with_driver(document_id)
        decision = self.authorize_driver_documents(caller, Permission.DOCUMENTS_READ, driver)
        self.guard.raise_for(decision, caller, Permission.DOCUMENTS_READ, driver.company_id)

        download_url = await self.storage.issue_download_target(document.file_path)
        return document, download_url

    async def list_for_driver(self, caller, driver_id: int) -> list[Document]:
        driver = await self._get_driver(driver_id)
        self.guard.enforce(caller, Permission.DOCUMENTS_READ, driver.company_id)

        result = await self.db.execute(
            select(Document)
            .where(Document.driver_id == driver_id)
            .order_by(desc(Document.uploaded_at), desc(Document.id))
        )
        return list(result.scalars().all())

    async def delete_document(self, caller, document_id: int) -> None:
        """Remove a document record. The stored object is left to storage retention."""
        document, driver = await self._get_document_with_driver(document_id)
        decision = self.authorize_driver_documents(caller, Permission.DOCUMENTS_DELETE, driver)
        self.guard.raise_for(decision, caller, Permission.DOCUMENTS_DELETE, driver.company_id)

        log_event(
            self.db,
            action=AuditAction.DOCUMENT_DELETED,
            actor_id=caller.id,
            company_id=document.company_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"driver_id": driver.id, "file_path": document.file_path},
        )
        await self.db.delete(document)
        await self.db.commit()

        logger.info("Document %s deleted by %s", document_id, caller.id)

    async def _get_driver(self, driver_id: int) -> Driver:
        driver = await self.db.get(Driver, driver_id)
        if driver is None:
            raise ResourceNotFoundError("Driver", driver_id)
        return driver

    async def _get_document_with_driver(self, document_id: int) -> Tuple[Document, Driver]:
        document = await self.db.get(Document, document_id)
        if document is None:
            raise ResourceNotFoundError("Document", document_id)
        driver = await self.db.get(Driver, document.driver_id)
        return document, driver
