from typing import Any, Dict, Optional

from fastapi import status


class BaseAPIError(Exception):
    """Base exception class for API errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        self.headers = headers
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "error_code": self.error_code}
        body.update(self.details)
        return body


class AuthenticationError(BaseAPIError):
    """Base class for authentication-related errors"""
    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTH_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationError):
    """Raised when user credentials are invalid"""
    def __init__(
        self,
        message: str = "Invalid credentials",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, error_code="INVALID_CREDENTIALS", details=details)


class TokenError(AuthenticationError):
    """Raised when there's a token-related error"""
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, error_code="TOKEN_ERROR")


class PermissionDenied(BaseAPIError):
    """Raised when user doesn't have required permissions"""
    def __init__(
        self,
        message: str = "Operation not permitted",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
            details=details,
        )


class NotFoundError(BaseAPIError):
    """Raised when a requested resource is not found"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
        )


class ConflictError(BaseAPIError):
    """Raised when a write collides with existing data or state"""
    def __init__(
        self,
        message: str = "A record with this data already exists",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="CONFLICT",
            details=details,
        )


class TenantContextError(BaseAPIError):
    def __init__(self, message: str = "Tenant context missing"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="TENANT_REQUIRED",
        )


class ConfigurationError(BaseAPIError):
    """Raised when an optional integration is used without being configured"""
    def __init__(self, message: str = "Configuration error"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="CONFIG_ERROR",
        )


class SubscriptionRequired(BaseAPIError):
    """Raised when the school's trial or subscription no longer allows access"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            error_code="subscription_required",
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error_code, "message": self.message}
        body.update(self.details)
        return body


class LimitExceeded(BaseAPIError):
    """Raised when creating a resource would exceed the plan's limit"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="limit_exceeded",
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error_code, "message": self.message}
        body.update(self.details)
        return body


class DuplicatePaymentWarning(BaseAPIError):
    def __init__(self, existing_payment: Dict[str, Any]):
        super().__init__(
            message="A similar payment was recorded recently. Submit again with forceCreate to record it anyway.",
            status_code=status.HTTP_409_CONFLICT,
            error_code="POTENTIAL_DUPLICATE",
            details={"existingPayment": existing_payment},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warning": self.error_code,
            "message": self.message,
            **self.details,
        }


class BadRequestError(BaseAPIError):
    """Raised when a request is well-formed but cannot be applied"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BAD_REQUEST",
            details=details,
        )


class FeatureNotAvailable(BaseAPIError):
    """Raised when the school's plan does not include a feature"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="feature_not_available",
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error_code, "message": self.message}
        body.update(self.details)
        return body
