"""Test main FastAPI application configuration."""
from fastapi.testclient import TestClient

from storyloom.core.config import settings


class TestMainApp:
    """Application-level routes, envelopes and headers."""

    def test_health_endpoint(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Storyloom API - Healthy"
        assert body["version"] == settings.VERSION
        assert body["features"]["books"] is True
        assert body["features"]["grokAI"] is False

    def test_api_status(self, client: TestClient):
        response = client.get("/api/status")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "API is working!"
        assert body["data"]["status"] == "operational"

    def test_unknown_api_path_returns_envelope(self, client: TestClient):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "API endpoint not found",
            "endpoint": "/api/does-not-exist",
        }

    def test_non_get_outside_api_is_not_found(self, client: TestClient):
        response = client.post("/somewhere")
        assert response.status_code == 404
        assert response.json()["message"] == "API endpoint not found"

    def test_security_headers(self, client: TestClient):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert "default-src 'self'" in response.headers["Content-Security-Policy"]

    def test_no_trailing_slash_redirect(self, client: TestClient):
        response = client.get("/api/status/", follow_redirects=False)
        assert response.status_code not in (301, 302, 307, 308)

    def test_openapi_under_api_prefix(self, client: TestClient):
        response = client.get(f"{settings.API_PREFIX}/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/books" in paths
        assert all(not path.startswith("/api/api") for path in paths)

    def test_malformed_json_is_validation_error(self, client: TestClient):
        response = client.post(
            "/api/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"


class TestFrontendFallback:
    def test_frontend_not_built(self, client: TestClient, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "FRONTEND_DIST_PATH", str(tmp_path / "missing"))
        response = client.get("/library")
        assert response.status_code == 404
        assert response.json()["message"] == "Frontend not built"

    def test_serves_built_client(self, client: TestClient, monkeypatch, tmp_path):
        (tmp_path / "index.html").write_text("<html>storyloom</html>")
        (tmp_path / "assets").mkdir()
        (tmp_path / "assets" / "app.js").write_text("console.log('hi')")
        monkeypatch.setattr(settings, "FRONTEND_DIST_PATH", str(tmp_path))

        asset = client.get("/assets/app.js")
        assert asset.status_code == 200
        assert asset.text == "console.log('hi')"

        # Client-side routes get the index page
        page = client.get("/books/123/edit")
        assert page.status_code == 200
        assert "storyloom" in page.text
