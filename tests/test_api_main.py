"""
Tests for the main FastAPI application.
"""
import pytest
from fastapi.testclient import TestClient
from api.main import app
from tests.conftest import HTTP_REQUEST, MANUAL_TRIGGER, OPENAI, make_node, make_workflow


@pytest.fixture
def test_client():
    """Client with the startup event run, so the node mapper is built."""
    with TestClient(app) as client:
        yield client


class TestMainApp:
    """Test the main FastAPI application."""

    def test_app_creation(self):
        """Test that the FastAPI app is created correctly."""
        assert app.title == "Workflow Node Mapping API"
        assert app.description is not None
        assert app.version == "1.0.0"

    def test_cors_middleware(self, test_client):
        """Test that CORS middleware is configured correctly."""
        assert any("CORSMiddleware" in str(middleware.cls) for middleware in app.user_middleware)

        response = test_client.get("/", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "*"

    def test_routers_included(self):
        """Test that the mapping and system routes are registered."""
        paths = {route.path for route in app.routes}
        for path in ["/", "/system/health", "/mapping/node-types", "/mapping/node-types/{type_id}",
                     "/mapping/map", "/mapping/analyze", "/mapping/summary"]:
            assert path in paths

    def test_root_endpoint(self, test_client):
        """Test the root endpoint."""
        response = test_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Workflow Node Mapping API"
        assert data["version"] == "1.0.0"
        assert "docs" in data
        assert "redoc" in data

    def test_request_id_headers(self, test_client):
        """Test that the logging middleware tags responses."""
        response = test_client.get("/")
        assert len(response.headers["X-Request-ID"]) == 8
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_openapi_schema(self, test_client):
        """Test that the OpenAPI schema is accessible."""
        response = test_client.get("/openapi.json")
        assert response.status_code == 200

        schema = response.json()
        assert "openapi" in schema
        assert "/mapping/map" in schema["paths"]

    def test_health(self, test_client):
        """Test the health endpoint reports the registry size."""
        response = test_client.get("/system/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["registered_node_types"] == 16


class TestNodeTypeRoutes:
    """Test the node type catalog endpoints."""

    def test_list_node_types(self, test_client):
        """Test listing every registered type."""
        response = test_client.get("/mapping/node-types")
        assert response.status_code == 200

        types = {item["type"]: item for item in response.json()}
        assert len(types) == 16
        assert types[HTTP_REQUEST]["category"] == "action"
        assert types[HTTP_REQUEST]["credentials"] == ["httpBasicAuth", "httpHeaderAuth", "oAuth2Api"]

    def test_filter_by_category(self, test_client):
        """Test the category query parameter."""
        response = test_client.get("/mapping/node-types", params={"category": "trigger"})
        assert response.status_code == 200
        assert {item["category"] for item in response.json()} == {"trigger"}
        assert len(response.json()) == 4

    def test_invalid_category(self, test_client):
        """Test that an unknown category is rejected."""
        response = test_client.get("/mapping/node-types", params={"category": "storage"})
        assert response.status_code == 422

    def test_get_node_type(self, test_client):
        """Test fetching one full definition."""
        response = test_client.get(f"/mapping/node-types/{OPENAI}")
        assert response.status_code == 200

        data = response.json()
        assert data["type"] == OPENAI
        assert data["credentials"][0]["name"] == "openAiApi"

    def test_unknown_node_type(self, test_client):
        """Test that an unknown type id gives 404 with the error body."""
        response = test_client.get("/mapping/node-types/vendor.unknown")
        assert response.status_code == 404

        data = response.json()
        assert data["code"] == "E1001"
        assert data["error"] == "NodeTypeNotFoundError"
        assert data["details"] == {"type": "vendor.unknown"}


class TestMappingRoutes:
    """Test the workflow mapping endpoints."""

    def test_map_workflow(self, test_client, linear_workflow):
        """Test mapping a valid workflow."""
        response = test_client.post("/mapping/map", json={"workflow": linear_workflow})
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "done"
        assert data["execution_order"] == ["start", "fetch"]
        url = data["nodes"][1]["parameters"]["url"]
        assert url["kind"] == "expression"
        assert url["segments"][0]["references"][0]["node_id"] == "start"
        assert data["validation"]["valid"] is True

    def test_map_strict_query(self, test_client):
        """Test the strict query parameter."""
        document = make_workflow([make_node("Start", MANUAL_TRIGGER), make_node("X", "vendor.unknown")])

        lenient = test_client.post("/mapping/map", json={"workflow": document}).json()
        strict = test_client.post("/mapping/map", params={"strict": "true"}, json={"workflow": document}).json()

        assert lenient["status"] == "done"
        assert strict["status"] == "failed"
        assert strict["nodes"] == []

    def test_map_with_credentials(self, test_client):
        """Test that supplied credentials mark variables as set without echoing secrets."""
        document = make_workflow([make_node("Ask", OPENAI, credentials={"openAiApi": {"id": "7", "name": "Key"}})])

        response = test_client.post("/mapping/map", json={
            "workflow": document,
            "credentials": {"7": {"apiKey": "sk-secret"}},
        })

        data = response.json()
        assert data["environment_variables"]["OPEN_AI_API_API_KEY"]["is_set"] is True
        assert "sk-secret" not in response.text

    def test_map_malformed_document(self, test_client):
        """Test that a document without a nodes array gives 422."""
        response = test_client.post("/mapping/map", json={"workflow": {"nodes": "nope"}})
        assert response.status_code == 422
        assert response.json()["code"] == "E2001"

    def test_map_missing_body(self, test_client):
        """Test request validation."""
        response = test_client.post("/mapping/map", json={})
        assert response.status_code == 422

    def test_analyze(self, test_client):
        """Test support analysis."""
        document = make_workflow([
            make_node("Start", MANUAL_TRIGGER),
            make_node("Fetch", HTTP_REQUEST, {"url": "https://example.com"}),
            make_node("X", "vendor.unknown"),
        ], [("Start", "Fetch")])

        response = test_client.post("/mapping/analyze", json={"workflow": document})
        assert response.status_code == 200

        data = response.json()
        assert data["supported"] is False
        assert data["total_nodes"] == 3
        assert data["supported_nodes"] == 2
        assert data["unsupported_node_types"] == ["vendor.unknown"]
        assert data["complexity_score"] == 3.5
        assert data["estimated_minutes"] == 9

    def test_summary(self, test_client, linear_workflow):
        """Test the markdown summary endpoint."""
        response = test_client.post("/mapping/summary", json={"workflow": linear_workflow})
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "done"
        assert data["valid"] is True
        assert data["summary"].startswith("# Workflow Conversion Summary")
