"""
Custom Exception Classes for the Loyalty Panel

Every error raised by the service layer derives from LoyaltyPanelError so the
global handlers can render one consistent response shape. Tenant scope denial
is not an exception: out-of-scope list reads come back empty.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes returned next to the human message."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_NO_ROLE_ASSIGNED = "AUTH_NO_ROLE_ASSIGNED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_DUPLICATE_RESOURCE = "VALIDATION_DUPLICATE_RESOURCE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    SERVICE_ERROR = "SERVICE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class LoyaltyPanelError(Exception):
    """Base exception class for all panel errors"""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(LoyaltyPanelError):
    """Raised when authentication fails"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid"""

    error_code = ErrorCode.AUTH_INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message=message)


class NoRoleAssignedError(LoyaltyPanelError):
    """
    The identity is valid but has no role record.

    Login succeeds at the identity layer, but the panel refuses any further
    access until an administrator assigns a role.
    """

    error_code = ErrorCode.AUTH_NO_ROLE_ASSIGNED

    def __init__(
        self,
        message: str = "Your account has no role assigned. Contact an administrator.",
        user_id: str | None = None,
    ):
        details = {"user_id": user_id} if user_id else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class AuthorizationError(LoyaltyPanelError):
    """Raised when user lacks permission for an action"""

    error_code = ErrorCode.AUTH_PERMISSION_DENIED

    def __init__(
        self, message: str = "You do not have permission to perform this action", required_permission: str | None = None
    ):
        details = {"required_permission": required_permission} if required_permission else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(LoyaltyPanelError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TenantNotFoundError(ResourceNotFoundError):
    def __init__(self, tenant_id: Any | None = None):
        super().__init__(resource_type="Tenant", resource_id=tenant_id)


class LoyaltyProgramNotFoundError(ResourceNotFoundError):
    def __init__(self, program_id: Any | None = None):
        super().__init__(resource_type="LoyaltyProgram", resource_id=program_id)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(LoyaltyPanelError):
    """Raised when input validation fails; `field` names the offending input"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        self.field = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class DuplicateResourceError(LoyaltyPanelError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.VALIDATION_DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


class InvalidStatusTransitionError(LoyaltyPanelError):
    """Raised when an invalid status transition is attempted"""

    error_code = ErrorCode.INVALID_STATUS_TRANSITION

    def __init__(self, current_status: str, target_status: str, resource_type: str = "Tenant"):
        super().__init__(
            message=f"Cannot transition {resource_type} from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "current_status": current_status, "target_status": target_status},
        )


# ============================================================================
# External Provider & Service Exceptions
# ============================================================================


class ProviderError(LoyaltyPanelError):
    """
    Non-2xx response from the push notification provider.

    `payload` keeps the provider's raw error body for diagnostics.
    """

    error_code = ErrorCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        provider_status: int | None = None,
        payload: Any | None = None,
    ):
        self.provider_status = provider_status
        self.payload = payload
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"provider_status": provider_status, "provider_response": payload},
        )


class ServiceError(LoyaltyPanelError):
    """Raised when a service layer operation fails"""

    error_code = ErrorCode.SERVICE_ERROR

    def __init__(self, message: str, service: str | None = None):
        details = {"service": service} if service else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


# ============================================================================
# Warnings
# ============================================================================


class PersistenceWarning(UserWarning):
    """
    History could not be saved after an irreversible external action succeeded.

    Logged and reported alongside the successful result; never raised.
    """
