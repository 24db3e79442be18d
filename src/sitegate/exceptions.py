"""Exception hierarchy for SiteGate.

This module provides:
- Base exception hierarchy with stable error codes
- ``DenialError`` raised by the ``enforce_permission`` entry point
- gRPC status mapping and a handler decorator for transport adapters

Denials inside the engine are returned as ``GuardPermissionResult`` values;
only the top-level entry point raises.

Usage in a gRPC servicer:
    from sitegate.exceptions import DenialError, grpc_error_handler

    @grpc_error_handler
    async def ApproveSubmittal(self, request, context):
        await guard.enforce_permission(...)
"""

from __future__ import annotations

import functools
import logging
from enum import Enum
from typing import Any

__all__ = [
    "DenialReason",
    # Base hierarchy
    "SiteGateError",
    "ConfigurationError",
    "CollaboratorError",
    "InvalidPermissionError",
    "InvalidScopeError",
    "DenialError",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


class DenialReason(str, Enum):
    """Closed taxonomy of authorization denials callers branch on."""

    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    SCOPE_RESTRICTION = "scope_restriction"
    ACCESS_EXPIRED = "access_expired"
    PROJECT_NOT_FOUND = "project_not_found"
    USER_NOT_MEMBER = "user_not_member"
    RESOURCE_NOT_FOUND = "resource_not_found"
    OWNER_ONLY = "owner_only"
    ADMIN_ONLY = "admin_only"
    NOT_ASSIGNED = "not_assigned"
    INVALID_STATUS = "invalid_status"
    WORKFLOW_VIOLATION = "workflow_violation"
    FINANCIAL_ACCESS_REQUIRED = "financial_access_required"


# ---- Exception Hierarchy ----------------------------------------------------


class SiteGateError(Exception):
    """Base exception for the authorization engine.

    Attributes:
        code: Stable error code string for protocol mapping.
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(SiteGateError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class CollaboratorError(SiteGateError):
    """A membership/organization lookup failed."""

    code: str = "COLLABORATOR_ERROR"
    message: str = "Membership lookup failed"


class InvalidPermissionError(SiteGateError):
    """Permission string is not a ``feature:resource:action`` triple."""

    code: str = "INVALID_PERMISSION"


class InvalidScopeError(SiteGateError):
    """Scope assignment violates the rules for a role."""

    code: str = "INVALID_SCOPE"

    def __init__(self, errors: list[str], **kwargs: Any) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or None, **kwargs)


class DenialError(SiteGateError):
    """An authorization check denied the requested action.

    Attributes:
        reason: DenialReason the caller can branch on.
        code: Feature-specific denial code (e.g. ``"SELF_APPROVAL_NOT_ALLOWED"``).
        details: action, reason, required permission, user role, resource id, metadata.
    """

    code: str = "PERMISSION_DENIED"
    message: str = "You do not have permission to perform this action"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        reason: DenialReason = DenialReason.INSUFFICIENT_PERMISSIONS,
        **kwargs: Any,
    ) -> None:
        self.reason = reason
        super().__init__(message, code, **kwargs)


# ---- gRPC Error Handling Utilities ------------------------------------------

_NOT_FOUND_REASONS = frozenset(
    {
        DenialReason.USER_NOT_MEMBER,
        DenialReason.PROJECT_NOT_FOUND,
        DenialReason.RESOURCE_NOT_FOUND,
    }
)

_FAILED_PRECONDITION_REASONS = frozenset(
    {
        DenialReason.INVALID_STATUS,
        DenialReason.WORKFLOW_VIOLATION,
    }
)


def get_grpc_status_code(error: SiteGateError) -> Any:
    """Map a SiteGateError to a ``grpc.StatusCode``.

    Import grpc locally so the engine itself never needs a transport.
    """
    import grpc

    if isinstance(error, DenialError):
        if error.reason in _NOT_FOUND_REASONS:
            return grpc.StatusCode.NOT_FOUND
        if error.reason in _FAILED_PRECONDITION_REASONS:
            return grpc.StatusCode.FAILED_PRECONDITION
        return grpc.StatusCode.PERMISSION_DENIED

    error_to_status = {
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "COLLABORATOR_ERROR": grpc.StatusCode.UNAVAILABLE,
        "INVALID_PERMISSION": grpc.StatusCode.INVALID_ARGUMENT,
        "INVALID_SCOPE": grpc.StatusCode.INVALID_ARGUMENT,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for unary gRPC service methods that call into the engine.

    Catches SiteGateError, attaches the stable code as trailing metadata and
    aborts with the mapped status.
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except SiteGateError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            log = logger.warning if isinstance(e, DenialError) else logger.error
            log(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e).__name__}: {e}",
            )
            return

    return wrapper
