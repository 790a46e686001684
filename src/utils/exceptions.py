"""
Domain Exceptions
Errors raised by the approval engine and services, mapped to HTTP responses in main.py
"""

from typing import Optional


class ExpenseFlowError(Exception):
    """Base exception class for domain errors"""
    status_code = 400

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class NotFoundError(ExpenseFlowError):
    """Raised when an expense, user or approver id cannot be resolved"""
    status_code = 404

    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND")


class InvalidStateError(ExpenseFlowError):
    """Raised when an operation is not allowed in the expense's current status"""
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, "INVALID_STATE")


class UnauthorizedError(ExpenseFlowError):
    """Raised when the actor is not allowed to act on the current approval step"""
    status_code = 403

    def __init__(self, message: str):
        super().__init__(message, "UNAUTHORIZED")


class ConfigError(ExpenseFlowError):
    """Raised when an approval rule is malformed or out of range for an expense"""
    status_code = 422

    def __init__(self, message: str):
        super().__init__(message, "CONFIG_ERROR")


class ConcurrencyError(ExpenseFlowError):
    """Raised when another writer changed the expense first"""
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, "CONCURRENT_UPDATE")


class ConflictError(ExpenseFlowError):
    """Raised when creating something that already exists"""
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, "CONFLICT")


class ValidationError(ExpenseFlowError):
    """Raised when input validation fails"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR")
