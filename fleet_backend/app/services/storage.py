"""
Document storage capability.

The core never moves file bytes. It asks the storage capability for a
short-lived signed target and hands that to the client, which uploads or
downloads directly against the object store.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from jose import JWTError, jwt

from fleet_backend.app.core.config import settings


class StorageCapability(ABC):
    """Interface of the object store as seen by the document lifecycle."""

    @abstractmethod
    async def issue_upload_target(self, path: str, content_type: str) -> str:
        """Signed URL the client PUTs the file to."""

    @abstractmethod
    async def issue_download_target(self, path: str) -> str:
        """Signed URL the client GETs the file from."""


class SignedUrlStorage(StorageCapability):
    """
    Issues signed object-store URLs.
    
    The signature is a JWT naming the object path, the allowed operation and
    (for uploads) the content type; the object store verifies it with the
    storage signing key before accepting the request. The key is separate from
    the session key, so a storage token never decodes as a session.
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        secret_key: str,
        ttl_seconds: int = 3600,
        algorithm: str = "HS256",
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    def _sign(self, path: str, operation: str, content_type: Optional[str] = None) -> str:
        claims = {
            "bucket": self.bucket,
            "path": path,
            "op": operation,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds),
        }
        if content_type:
            claims["content_type"] = content_type
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def _url(self, kind: str, path: str, token: str) -> str:
        return f"{self.base_url}/object/{kind}/sign/{self.bucket}/{quote(path)}?token={token}"

    async def issue_upload_target(self, path: str, content_type: str) -> str:
        return self._url("upload", path, self._sign(path, "upload", content_type))

    async def issue_download_target(self, path: str) -> str:
        return self._url("download", path, self._sign(path, "download"))

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """Claims of a token this storage issued, or None if invalid or expired."""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None


storage = SignedUrlStorage(
    base_url=settings.storage_base_url,
    bucket=settings.storage_bucket,
    secret_key=settings.storage_signing_key,
    ttl_seconds=settings.signed_url_ttl_seconds,
)


def get_storage() -> StorageCapability:
    """FastAPI dependency for the storage capability."""
    return storage
