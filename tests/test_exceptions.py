"""Tests for the exception hierarchy and gRPC mapping."""

from __future__ import annotations

import grpc
import pytest

from sitegate.exceptions import (
    CollaboratorError,
    ConfigurationError,
    DenialError,
    DenialReason,
    InvalidPermissionError,
    InvalidScopeError,
    SiteGateError,
    get_grpc_status_code,
    grpc_error_handler,
)


class FakeContext:
    """Minimal stand-in for grpc.aio.ServicerContext."""

    def __init__(self) -> None:
        self.trailing_metadata = None
        self.aborted = None

    def set_trailing_metadata(self, metadata) -> None:
        self.trailing_metadata = metadata

    async def abort(self, code, details) -> None:
        self.aborted = (code, details)


class TestHierarchy:
    """Tests for error codes and details."""

    def test_defaults(self) -> None:
        """Subclasses carry stable codes and default messages."""
        error = CollaboratorError()
        assert error.code == "COLLABORATOR_ERROR"
        assert error.message == "Membership lookup failed"
        assert isinstance(error, SiteGateError)

    def test_details(self) -> None:
        """Keyword arguments are kept as details."""
        error = InvalidPermissionError("bad", permission="documents:read")
        assert error.details == {"permission": "documents:read"}
        assert str(error) == "bad"

    def test_invalid_scope_joins_errors(self) -> None:
        """The message joins every validation error."""
        error = InvalidScopeError(["first", "second"], role="foreman")
        assert error.message == "first; second"
        assert error.errors == ["first", "second"]

    def test_denial_error(self) -> None:
        """Denials carry a reason and a feature code."""
        error = DenialError("nope", code="SELF_APPROVAL_NOT_ALLOWED", reason=DenialReason.WORKFLOW_VIOLATION)
        assert error.code == "SELF_APPROVAL_NOT_ALLOWED"
        assert error.reason == DenialReason.WORKFLOW_VIOLATION
        assert DenialError().code == "PERMISSION_DENIED"


class TestGrpcMapping:
    """Tests for status code mapping."""

    @pytest.mark.parametrize(
        ("reason", "status"),
        [
            (DenialReason.USER_NOT_MEMBER, grpc.StatusCode.NOT_FOUND),
            (DenialReason.INVALID_STATUS, grpc.StatusCode.FAILED_PRECONDITION),
            (DenialReason.WORKFLOW_VIOLATION, grpc.StatusCode.FAILED_PRECONDITION),
            (DenialReason.ADMIN_ONLY, grpc.StatusCode.PERMISSION_DENIED),
            (DenialReason.SCOPE_RESTRICTION, grpc.StatusCode.PERMISSION_DENIED),
        ],
    )
    def test_denials(self, reason: DenialReason, status) -> None:
        """Denial reasons map onto gRPC status codes."""
        assert get_grpc_status_code(DenialError(reason=reason)) == status

    def test_other_errors(self) -> None:
        """Non-denial errors map by code."""
        assert get_grpc_status_code(ConfigurationError()) == grpc.StatusCode.FAILED_PRECONDITION
        assert get_grpc_status_code(CollaboratorError()) == grpc.StatusCode.UNAVAILABLE
        assert get_grpc_status_code(InvalidScopeError(["x"])) == grpc.StatusCode.INVALID_ARGUMENT
        assert get_grpc_status_code(SiteGateError()) == grpc.StatusCode.INTERNAL

    @pytest.mark.asyncio
    async def test_handler_aborts_with_code(self) -> None:
        """The decorator aborts with the mapped status and trailing code."""

        class Servicer:
            @grpc_error_handler
            async def Approve(self, request, context):
                raise DenialError("Payments over $50,000 require admin approval", code="ADMIN_APPROVAL_REQUIRED")

        context = FakeContext()
        await Servicer().Approve(None, context)
        assert context.trailing_metadata == [("error-code", "ADMIN_APPROVAL_REQUIRED")]
        assert context.aborted == (
            grpc.StatusCode.PERMISSION_DENIED,
            "[ADMIN_APPROVAL_REQUIRED] Payments over $50,000 require admin approval",
        )

    @pytest.mark.asyncio
    async def test_handler_passes_results(self) -> None:
        """Successful calls return their response."""

        class Servicer:
            @grpc_error_handler
            async def Read(self, request, context):
                return {"ok": request}

        context = FakeContext()
        assert await Servicer().Read(1, context) == {"ok": 1}
        assert context.aborted is None

    @pytest.mark.asyncio
    async def test_handler_unexpected_error(self) -> None:
        """Foreign exceptions abort as INTERNAL."""

        class Servicer:
            @grpc_error_handler
            async def Boom(self, request, context):
                raise RuntimeError("kaput")

        context = FakeContext()
        await Servicer().Boom(None, context)
        assert context.aborted == (grpc.StatusCode.INTERNAL, "Unexpected RuntimeError: kaput")
