"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    ForbiddenAppError,
    NotFoundAppError,
    PayloadTooLargeAppError,
    StorageAppError,
    ValidationAppError,
)
from app.core.exception_handlers import setup_exception_handlers, status_for_error


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="invalid_id", message="Invalid ID format")

        response = client.get("/test-validation")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ID format", "code": "invalid_id"}
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    @pytest.mark.parametrize(
        ("error", "expected_status"),
        [
            (ForbiddenAppError(code="project_forbidden", message="Forbidden"), 403),
            (NotFoundAppError(code="project_not_found", message="Project not found"), 404),
            (PayloadTooLargeAppError(code="payload_too_large", message="Too large"), 413),
            (StorageAppError(code="blob_write_failed", message="Failed to store uploaded file"), 500),
            (AppError(code="generic", message="Generic failure"), 400),
        ],
    )
    def test_status_mapping(self, error: AppError, expected_status: int):
        assert status_for_error(error) == expected_status

    def test_not_found_error_returns_404(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-missing")
        async def test_endpoint():
            raise NotFoundAppError(code="project_not_found", message="Project not found")

        response = client.get("/test-missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Project not found"

    def test_message_markup_is_stripped(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-markup")
        async def test_endpoint():
            raise ValidationAppError(code="test", message="<img src=x>bad")

        response = client.get("/test-markup")

        assert "<" not in response.json()["error"]


class TestRequestValidationHandler:
    def test_query_validation_errors_return_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-query")
        async def test_endpoint(limit: int):
            return {"limit": limit}

        response = client.get("/test-query", params={"limit": "many"})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "invalid_request"
        assert data["error"].startswith("limit:")


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_unexpected_exception_returns_sanitized_500(self, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("database connection failed")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/test-crash")

        assert response.status_code == 500
        assert "database connection" not in response.text
        assert response.json()["code"] == "internal_server_error"

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        from app.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text
        assert json.loads(response_text)["error"] == "An unexpected error occurred. Please try again later."


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        """Verify setup_exception_handlers properly registers handlers."""
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
