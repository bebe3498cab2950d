"""Unit tests for the backend error taxonomy."""

import pytest

from infrastructure.resilience import (
    BackendError,
    CircuitOpenError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PermanentBackendError,
    PermissionDeniedError,
    TransientBackendError,
    UnauthenticatedError,
)


@pytest.mark.unit
class TestBackendErrors:
    @pytest.mark.parametrize(
        "error_class,code",
        [
            (TransientBackendError, "unavailable"),
            (InvalidArgumentError, "invalid-argument"),
            (NotFoundError, "not-found"),
            (ConflictError, "already-exists"),
            (PermissionDeniedError, "permission-denied"),
            (UnauthenticatedError, "unauthenticated"),
        ],
    )
    def test_default_codes(self, error_class, code):
        assert error_class("message").code == code

    def test_permanent_errors_share_base(self):
        for error_class in (NotFoundError, ConflictError, UnauthenticatedError):
            assert issubclass(error_class, PermanentBackendError)
            assert issubclass(error_class, BackendError)

    def test_explicit_code_and_context(self):
        error = BackendError("quota", code="resource-exhausted", provider="aws", operation="database.query")

        assert str(error) == "quota"
        assert error.code == "resource-exhausted"
        assert error.provider == "aws"
        assert error.operation == "database.query"
        assert repr(error) == "BackendError(code='resource-exhausted', message='quota')"

    def test_circuit_open_message(self):
        error = CircuitOpenError("local.database.get", retry_in=12.7)

        assert "local.database.get" in str(error)
        assert "OPEN" in str(error)
        assert "12 seconds" in str(error)
        assert not isinstance(error, PermanentBackendError)
