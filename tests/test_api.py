"""Tests for API documentation and route registration - no database required."""


class TestOpenAPISchema:

    def test_openapi_schema_available(self, client_no_db):
        """Test that OpenAPI schema is generated."""
        response = client_no_db.get("/openapi.json")
        assert response.status_code == 200
        schema = response.json()
        assert "openapi" in schema
        assert "paths" in schema
        assert "info" in schema

    def test_docs_endpoint_available(self, client_no_db):
        """Test that Swagger UI is accessible."""
        response = client_no_db.get("/docs")
        assert response.status_code == 200

    def test_api_routes_registered(self, client_no_db):
        """Test that expected API routes are in the schema."""
        response = client_no_db.get("/openapi.json")
        paths = response.json().get("paths", {})

        assert "/health" in paths
        assert "/api/posts/" in paths
        assert "/api/reports/" in paths
        assert "/api/reports/markers" in paths
        assert "/api/reports/stats/type-counts" in paths
        assert "/api/auth/login" in paths
        assert "/api/users/count" in paths
