"""
Errors raised by the arrears services. Routers turn them into HTTP responses using
status_code; message is safe to show to the caller.
"""

from fastapi import status


class ServiceError(Exception):
    """Rejected ledger operation: bad input (400), missing school or arrear (404), storage failure (500)."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ArrearConflictError(ServiceError):
    """The arrear changed since the caller read it; nothing was written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
