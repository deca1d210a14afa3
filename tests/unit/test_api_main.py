"""Tests for the FastAPI application and its exception handlers."""

import pytest
from httpx import ASGITransport, AsyncClient

from dsu.core.errors import (
    ConflictError,
    ConsistencyError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    OAuthError,
    UnauthorizedError,
    ValidationError,
)
from dsu.main import create_app


@pytest.fixture
def app(test_settings):
    """Application wired to settings isolated from the environment."""
    return create_app(settings=test_settings)


@pytest.fixture
async def client(app):
    """Async HTTP client for the bare application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    async def test_health_returns_healthy_status(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_unknown_route_is_404(self, client):
        response = await client.get("/v1/nonexistent/path/that/does/not/exist")
        assert response.status_code == 404


class TestSecurityHeaders:
    """Tests for SecurityHeadersMiddleware."""

    async def test_standard_headers_present(self, client):
        response = await client.get("/health")
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "default-src 'none'" in response.headers["content-security-policy"]

    async def test_hsts_only_in_production(self, client):
        response = await client.get("/health")
        assert "strict-transport-security" not in response.headers

    async def test_v1_responses_not_cached(self, app, client):
        @app.get("/v1/test/cache")
        async def cached():
            return {"ok": True}

        response = await client.get("/v1/test/cache")
        assert response.headers["cache-control"] == "no-store, max-age=0"

        health = await client.get("/health")
        assert "cache-control" not in health.headers


class TestExceptionHandlers:
    """Tests for the error-envelope handlers."""

    @pytest.mark.parametrize(
        ("exc", "status", "code"),
        [
            (ValidationError("Invalid input", details=[{"field": "x"}]), 400, "VALIDATION_ERROR"),
            (UnauthorizedError(), 401, "UNAUTHORIZED"),
            (ForbiddenError(), 403, "FORBIDDEN"),
            (NotFoundError("User", "alice"), 404, "NOT_FOUND"),
            (ConflictError("USER_EXISTS", "Taken"), 409, "USER_EXISTS"),
        ],
    )
    async def test_api_error_envelope(self, app, client, exc, status, code):
        @app.get("/test/raise")
        async def raise_error():
            raise exc

        response = await client.get("/test/raise")
        assert response.status_code == status
        body = response.json()
        assert body["error"]["code"] == code
        assert body["error"]["message"] == exc.message
        assert "data" not in body

    async def test_internal_error_is_opaque(self, app, client):
        @app.get("/test/internal")
        async def raise_internal():
            raise InternalError("Database connection to prod-db-01 failed")

        response = await client.get("/test/internal")
        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": None,
        }

    async def test_consistency_error_hides_key(self, app, client):
        @app.get("/test/consistency")
        async def raise_consistency():
            raise ConsistencyError("user", "alice")

        response = await client.get("/test/consistency")
        assert response.status_code == 500
        assert "alice" not in response.text

    async def test_oauth_error_shape(self, app, client):
        @app.get("/test/oauth")
        async def raise_oauth():
            raise OAuthError("invalid_client", "Bad client", 401)

        response = await client.get("/test/oauth")
        assert response.status_code == 401
        assert response.json() == {
            "error": "invalid_client",
            "error_description": "Bad client",
        }
        assert response.headers["www-authenticate"].startswith("Basic")
        assert response.headers["cache-control"] == "no-store"

    async def test_request_validation_is_400(self, app, client):
        @app.get("/test/typed")
        async def typed(number: int):
            return {"number": number}

        response = await client.get("/test/typed", params={"number": "abc"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"][0]["loc"] == ["query", "number"]

    async def test_unhandled_exception_is_500(self, app):
        @app.get("/test/boom")
        async def boom():
            raise RuntimeError("secret detail")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/test/boom")
        assert response.status_code == 500
        assert "secret detail" not in response.text


class TestCreateApp:
    """Tests for the application factory."""

    def test_state_holds_settings_storage_and_services(self, test_settings, sql_storage):
        app = create_app(settings=test_settings, storage=sql_storage)
        assert app.state.settings is test_settings
        assert app.state.storage is sql_storage
        assert app.state.services.data is not None

    async def test_lifespan_initializes_and_seeds(self, test_settings, sql_storage):
        app = create_app(settings=test_settings, storage=sql_storage)
        async with app.router.lifespan_context(app):
            ids, count = await sql_storage.registry.get_schema_ids(0, 10)
        assert count >= 1
        assert "weight" in ids
