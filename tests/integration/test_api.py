"""Integration tests for the draft backend API."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


class TestAPIEndpoints:
    """Test cases for API endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test the health check endpoint."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        """Test the root endpoint."""
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["endpoints"]["applications"] == "/api/applications"

    @pytest.mark.asyncio
    async def test_openapi_schema(self, client: AsyncClient):
        """Test that OpenAPI schema is accessible."""
        response = await client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/applications" in paths
        assert "/api/applications/{application_id}" in paths


class TestApplicationEndpoints:
    """Test create, read and update of draft applications."""

    @pytest.mark.asyncio
    async def test_create_and_read(self, client: AsyncClient):
        response = await client.post(
            "/api/applications",
            json={"legalBusinessName": "Acme", "businessCsz": "Austin, TX 78701"},
        )
        assert response.status_code == 200
        created = response.json()
        assert created["id"]
        assert created["currentStep"] == 1
        assert created["isFullApplicationCompleted"] is False

        response = await client.get(f"/api/applications/{created['id']}")
        assert response.status_code == 200
        record = response.json()
        assert record["legalBusinessName"] == "Acme"
        assert record["businessCsz"] == "Austin, TX 78701"

    @pytest.mark.asyncio
    async def test_unknown_identity_is_404(self, client: AsyncClient):
        assert (await client.get("/api/applications/missing")).status_code == 404
        response = await client.patch("/api/applications/missing", json={"email": "a@b.co"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_patch_merges_fields(self, client: AsyncClient):
        created = (
            await client.post("/api/applications", json={"legalBusinessName": "Acme"})
        ).json()
        response = await client.patch(
            f"/api/applications/{created['id']}",
            json={"ein": "123456789", "currentStep": 2},
        )
        assert response.status_code == 200
        record = response.json()
        assert record["legalBusinessName"] == "Acme"
        assert record["ein"] == "123456789"
        assert record["currentStep"] == 2
        assert record["agentViewUrl"] is None

    @pytest.mark.asyncio
    async def test_completion_assigns_agent_view_url(self, client: AsyncClient):
        created = (await client.post("/api/applications", json={})).json()
        response = await client.patch(
            f"/api/applications/{created['id']}",
            json={"isFullApplicationCompleted": True, "applicantSignature": "SIGNED"},
        )
        record = response.json()
        assert record["isFullApplicationCompleted"] is True
        assert record["agentViewUrl"] == f"/agent/application/{created['id']}"

    @pytest.mark.asyncio
    async def test_post_reuses_incomplete_application_by_email(self, client: AsyncClient):
        first = (
            await client.post(
                "/api/applications", json={"email": "dana@acme.com", "fullName": "Dana"}
            )
        ).json()
        second = (
            await client.post(
                "/api/applications", json={"email": "dana@acme.com", "phone": "5125550100"}
            )
        ).json()
        assert second["id"] == first["id"]
        assert second["fullName"] == "Dana"
        assert second["phone"] == "5125550100"

    @pytest.mark.asyncio
    async def test_post_after_completion_creates_new(self, client: AsyncClient):
        first = (
            await client.post(
                "/api/applications", json={"email": "dana@acme.com", "isCompleted": True}
            )
        ).json()
        second = (
            await client.post("/api/applications", json={"email": "dana@acme.com"})
        ).json()
        assert second["id"] != first["id"]

    @pytest.mark.asyncio
    async def test_invalid_body(self, client: AsyncClient):
        response = await client.post("/api/applications", json={"currentStep": "first"})
        assert response.status_code == 422
