"""Unit tests for mapping service errors to HTTP responses."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from network_token.api.errors import register_exception_handlers
from network_token.models.exceptions import (
    ApiError,
    KeyMaterialError,
    NetworkError,
    NetworkTokenError,
    OrchestrationError,
    PersistenceError,
    SigningError,
    ValidationError,
)


class _Body(BaseModel):
    account_number: str


@pytest.fixture
def raising_app():
    """App whose /raise/{kind} route raises the named error kind."""
    app = FastAPI()
    register_exception_handlers(app)

    errors = {
        "api_400": ApiError("rejected", status_code=400, response_body="Invalid card number"),
        "api_odd": ApiError("odd status", status_code=302, response_body="moved"),
        "network": NetworkError("timeout"),
        "validation": ValidationError("account_number must be numeric"),
        "key": KeyMaterialError("no key"),
        "signing": SigningError("no key"),
        "persistence": PersistenceError("db down"),
        "orchestration": OrchestrationError("bad body"),
        "base": NetworkTokenError("unknown"),
    }

    @app.get("/raise/{kind}")
    async def raise_error(kind: str):
        raise errors[kind]

    @app.post("/body")
    async def body(payload: _Body):
        return {"ok": True}

    return TestClient(app)


class TestErrorMapping:
    """Tests for register_exception_handlers."""

    def test_api_error_echoes_remote_status(self, raising_app):
        response = raising_app.get("/raise/api_400")

        assert response.status_code == 400
        assert response.json() == {
            "error": "api_error",
            "detail": "Invalid card number",
            "status_code": 400,
        }

    def test_api_error_with_non_error_status(self, raising_app):
        response = raising_app.get("/raise/api_odd")

        assert response.status_code == 502
        assert response.json()["status_code"] == 302

    def test_network_error_is_503(self, raising_app):
        response = raising_app.get("/raise/network")

        assert response.status_code == 503
        assert response.json()["error"] == "network_error"

    def test_validation_error_is_400(self, raising_app):
        response = raising_app.get("/raise/validation")

        assert response.status_code == 400
        assert response.json() == {
            "error": "validation_error",
            "detail": "account_number must be numeric",
        }

    @pytest.mark.parametrize(
        "kind,error",
        [
            ("key", "key_material_error"),
            ("signing", "signing_error"),
            ("persistence", "persistence_error"),
            ("orchestration", "orchestration_error"),
            ("base", "internal_error"),
        ],
    )
    def test_internal_errors_are_500(self, raising_app, kind, error):
        response = raising_app.get(f"/raise/{kind}")

        assert response.status_code == 500
        assert response.json()["error"] == error
        assert response.json()["detail"] == "Internal server error"

    def test_request_validation_does_not_echo_input(self, raising_app):
        """Test that a malformed body is reported without its values."""
        response = raising_app.post("/body", json={"account_number": 4111111111111111})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert "4111111111111111" not in response.text
