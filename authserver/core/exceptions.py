"""
Custom exceptions for the auth server.
Provides consistent error handling across the application.

Every AppError is rendered by the handlers in main.py as
``{"error": <message>, **extra}`` with the exception's status code.
"""
from typing import Optional


class AppError(Exception):
    """Base exception for the auth server"""
    status_code: int = 500

    def __init__(self, message: str = "An error occurred", extra: Optional[dict] = None):
        self.message = message
        self.extra = extra or {}
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Startup configuration is unusable"""
    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found"""
    status_code = 404

    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class AlreadyExistsError(AppError):
    """Resource already exists"""
    status_code = 400

    def __init__(self, resource: str = "Resource", field: str = None, value: str = None):
        if field and value:
            message = f"{resource} with {field} '{value}' already exists"
        else:
            message = f"{resource} already exists"
        super().__init__(message)


class BusinessRuleError(AppError):
    """Operation conflicts with a business rule"""
    status_code = 400

    def __init__(self, message: str, extra: Optional[dict] = None):
        super().__init__(message, extra)


class ValidationError(AppError):
    """Validation failed"""
    status_code = 400

    def __init__(self, message: str = "Validation failed", field: str = None):
        extra = {}
        if field:
            extra["details"] = [{"field": field, "message": message}]
        super().__init__(message, extra)


class UnauthorizedError(AppError):
    """Authentication failed"""
    status_code = 401

    def __init__(self, message: str = "Could not validate credentials", extra: Optional[dict] = None):
        super().__init__(message, extra)


class TokenInvalidError(UnauthorizedError):
    """Token is missing, unknown, expired or revoked"""
    def __init__(self, message: str = "Invalid or expired refresh token"):
        super().__init__(message)


class AccountNotActiveError(UnauthorizedError):
    """User status blocks authentication"""
    def __init__(self, status: str, message: str):
        super().__init__("Account not active", {"status": status, "message": message})


class OrganizationInactiveError(UnauthorizedError):
    """User belongs to a deactivated organization"""
    def __init__(self, organization_name: str = None):
        detail = "Your organization has been deactivated. Please contact support."
        if organization_name:
            detail = f"{organization_name} has been deactivated. Please contact support."
        super().__init__(
            "Organization deactivated",
            {"status": "OrganizationInactive", "message": detail}
        )


class ForbiddenError(AppError):
    """Access denied"""
    status_code = 403

    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(message)


class QuotaNotRecognizedError(AppError):
    """Caller has no quota scheme to account against"""
    status_code = 400

    def __init__(self, message: str = "User type not recognized"):
        super().__init__(message)


# Raise helpers
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404"""
    raise NotFoundError(resource, resource_id)


def raise_already_exists(resource: str = "Resource", field: str = None, value: str = None):
    """Raise 400 for duplicate"""
    raise AlreadyExistsError(resource, field, value)


def raise_business_rule(message: str, **extra):
    """Raise 400 for a rule conflict"""
    raise BusinessRuleError(message, extra or None)


def raise_unauthorized(message: str = "Could not validate credentials"):
    """Raise 401"""
    raise UnauthorizedError(message)


def raise_forbidden(message: str = "You don't have permission to access this resource"):
    """Raise 403"""
    raise ForbiddenError(message)


def raise_validation_error(message: str = "Validation failed", field: str = None):
    """Raise 400 for invalid input"""
    raise ValidationError(message, field)
