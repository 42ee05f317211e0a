from typing import Optional, Any

class GatorPayError(Exception):
    """
    Base exception for the GatorPay client.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: Optional[int] = None, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ValidationError(GatorPayError):
    """
    Raised locally when user input is malformed. No request is made.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)

class BackendError(GatorPayError):
    """
    Raised when the backend reports a failure (non-2xx or success=false).
    """
    def __init__(self, message: str = "Request failed", status_code: Optional[int] = None, details: Optional[Any] = None):
        super().__init__(message, code="BACKEND_ERROR", status_code=status_code, details=details)

class AuthRejected(GatorPayError):
    """
    Raised when the backend refuses credentials or a verification code.
    """
    def __init__(self, message: str = "Authentication failed", status_code: Optional[int] = None, details: Optional[Any] = None):
        super().__init__(message, code="AUTH_REJECTED", status_code=status_code, details=details)

class SessionInvalid(GatorPayError):
    """
    Raised when the stored session can no longer be trusted. Always forces logout.
    """
    def __init__(self, message: str = "Your session has expired. Please sign in again.", details: Optional[Any] = None):
        super().__init__(message, code="SESSION_INVALID", status_code=401, details=details)

class TransientNetworkError(GatorPayError):
    """
    Raised when the backend cannot be reached or times out.
    """
    def __init__(self, message: str = "Unable to reach GatorPay. Please check your connection and try again.", details: Optional[Any] = None):
        super().__init__(message, code="NETWORK_ERROR", details=details)

class ChallengeExpired(GatorPayError):
    """
    Raised when a verification challenge can no longer accept codes.
    """
    def __init__(self, message: str = "Verification code has expired. Please request a new one.", details: Optional[Any] = None):
        super().__init__(message, code="CHALLENGE_EXPIRED", details=details)

class ChallengeStateError(GatorPayError):
    """
    Raised when an operation is not allowed in the current challenge state.
    """
    def __init__(self, message: str = "Operation not allowed right now", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_STATE", details=details)

class OperationInProgressError(GatorPayError):
    """
    Raised when the same action is submitted again while it is still pending.
    """
    def __init__(self, message: str = "Please wait for the current request to finish", details: Optional[Any] = None):
        super().__init__(message, code="IN_PROGRESS", details=details)
