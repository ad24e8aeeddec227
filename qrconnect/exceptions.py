"""
Custom exceptions for QR Connect.
"""


class QRConnectError(Exception):
    """Base class for all QR Connect errors."""


class ApiError(QRConnectError):
    """Raised when the local proxy answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str = None):
        self.status_code = status_code
        self.message = message or f"HTTP {status_code}"
        super().__init__(self.message)


class UpstreamError(QRConnectError):
    """Raised when the Evolution gateway cannot be reached or answers without the expected payload."""

    def __init__(self, operation: str, message: str = None):
        self.operation = operation
        self.message = message or f"Upstream call failed: {operation}"
        super().__init__(self.message)


class ValidationError(QRConnectError, ValueError):
    """Raised when local input is rejected before any remote call."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidTransitionError(QRConnectError):
    """Raised when a wizard operation is called from the wrong step."""

    def __init__(self, current_step: int, operation: str):
        self.current_step = current_step
        self.operation = operation
        super().__init__(f"Cannot {operation} while on step {current_step}")
