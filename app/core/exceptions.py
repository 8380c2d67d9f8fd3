from typing import Optional, Any


class SecondHomeError(Exception):
    """
    Base exception for the SecondHome application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(SecondHomeError):
    """
    Raised when a request is well-formed but violates a business rule
    (bad id, past date, amount mismatch, ...).
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="BAD_REQUEST", status_code=400, details=details)


class AuthenticationError(SecondHomeError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class PermissionDeniedError(SecondHomeError):
    """
    Raised when an authenticated user may not perform the action.
    """
    def __init__(self, message: str = "Permission denied", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)


class ResourceNotFoundError(SecondHomeError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ConflictError(SecondHomeError):
    """
    Raised when the request clashes with existing data (duplicate account, already paid).
    """
    def __init__(self, message: str = "Resource already exists", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)


class ExternalServiceError(SecondHomeError):
    """
    Raised when an external service (Twilio, Razorpay, Groq, Cloudinary) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)


class ServiceNotConfiguredError(SecondHomeError):
    """
    Raised when an optional integration is used without credentials.
    """
    def __init__(self, message: str = "Service not configured", details: Optional[Any] = None):
        super().__init__(message, code="SERVICE_NOT_CONFIGURED", status_code=503, details=details)
