"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Authentication / authorization
#
# Messages are deliberately generic; the reason for a denial is only logged.

class AuthenticationError(AppException):
    """No usable session: missing, invalid, revoked token or inactive profile."""

    def __init__(self, message: str = "Please sign in"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN
        )


class CrossTenantAccessError(AppException):
    """Raised when a non-admin touches a resource of another company."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            error_code="ERR_PERM_002",
            status_code=status.HTTP_403_FORBIDDEN
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class BadRequestError(AppException):
    """Input that is well-formed but unacceptable (unknown permission, duplicate email)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_BAD_REQUEST",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Assignment preconditions
#
# Expected, recoverable user errors. Messages are shown to the user verbatim.

class AssignmentError(AppException):
    """Base class for assignment precondition failures."""

    error_code = "ERR_ASSIGN_000"
    default_message = "Assignment rejected"

    def __init__(self, message: str = None, details: Dict[str, Any] = None):
        super().__init__(
            message=message or self.default_message,
            error_code=self.error_code,
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class DriverNotAssignableError(AssignmentError):
    error_code = "ERR_ASSIGN_001"
    default_message = "Driver is not active and cannot be assigned a vehicle"


class CompanyMismatchError(AssignmentError):
    error_code = "ERR_ASSIGN_002"
    default_message = "Vehicle not found or does not belong to the driver's company"


class VehicleNotAssignableError(AssignmentError):
    error_code = "ERR_ASSIGN_003"
    default_message = "Vehicle is not available for assignment"


class DriverAlreadyAssignedError(AssignmentError):
    error_code = "ERR_ASSIGN_004"
    default_message = "Driver already has an active assignment"


class VehicleAlreadyAssignedError(AssignmentError):
    error_code = "ERR_ASSIGN_005"
    default_message = "Vehicle already has an active assignment"


class AssignmentAlreadyEndedError(AssignmentError):
    error_code = "ERR_ASSIGN_006"
    default_message = "Assignment is already ended"


class StatusTransitionError(AppException):
    """A plain status update that would break an assignment invariant."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


# Documents

class DriverInactiveError(AppException):
    """Documents cannot be attached to, read from or removed from inactive drivers."""

    def __init__(self, message: str = "Cannot manage documents for inactive drivers"):
        super().__init__(
            message=message,
            error_code="ERR_DOC_001",
            status_code=status.HTTP_403_FORBIDDEN
        )


class DocumentValidationError(AppException):
    """Rejected upload metadata (file type, size)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_DOC_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Pydantic error dicts may carry exception objects in 'ctx'; keep them printable."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception on %s %s: %s", request.method, request.url.path, type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
