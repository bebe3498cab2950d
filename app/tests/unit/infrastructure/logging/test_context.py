"""Unit tests for operation context binding."""

import pytest
import structlog

from infrastructure.logging import (
    bind_operation_context,
    clear_operation_context,
    get_correlation_id,
    get_module_logger,
)


@pytest.mark.unit
class TestBindOperationContext:
    def test_binds_provider_operation_and_correlation_id(self):
        with bind_operation_context(provider="local", operation="database.get") as cid:
            context = structlog.contextvars.get_contextvars()
            assert context["provider"] == "local"
            assert context["operation"] == "database.get"
            assert context["correlation_id"] == cid
            assert get_correlation_id() == cid

        assert structlog.contextvars.get_contextvars() == {}

    def test_explicit_correlation_id(self):
        with bind_operation_context(correlation_id="req-123") as cid:
            assert cid == "req-123"
            assert get_correlation_id() == "req-123"

    def test_nested_contexts_share_correlation_id(self):
        with bind_operation_context(operation="migration.execute") as outer:
            with bind_operation_context(provider="aws", operation="database.query") as inner:
                assert inner == outer
                assert structlog.contextvars.get_contextvars()["operation"] == "database.query"

            context = structlog.contextvars.get_contextvars()
            assert context["operation"] == "migration.execute"
            assert context["correlation_id"] == outer
            assert "provider" not in context

    def test_extra_context(self):
        with bind_operation_context(collection="users"):
            assert structlog.contextvars.get_contextvars()["collection"] == "users"

    def test_clear_operation_context(self):
        structlog.contextvars.bind_contextvars(correlation_id="x")

        clear_operation_context()

        assert get_correlation_id() is None


@pytest.mark.unit
class TestGetModuleLogger:
    def test_binds_calling_module(self):
        logger = get_module_logger()

        context = logger._context  # pylint: disable=protected-access
        assert context["component"] == "test_context"
        assert context["module_path"].endswith("test_context")
