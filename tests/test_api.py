"""API endpoint tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from trailseal.api import app
from trailseal.api.audit import get_audit_chain, get_settings
from trailseal.api.config import Settings
from trailseal.audit.chain import AuditChain
from trailseal.audit.storage import InMemoryAuditStorage


@pytest.fixture
def chain() -> AuditChain:
    """Audit chain over fresh in-memory storage."""
    return AuditChain(InMemoryAuditStorage())


@pytest.fixture
def client(chain: AuditChain):
    """Test client wired to the in-memory chain."""
    app.dependency_overrides[get_audit_chain] = lambda: chain
    yield TestClient(app)
    app.dependency_overrides.clear()


def record(client: TestClient, organization_id: str = "org-1", **overrides) -> dict:
    body = {
        "organizationId": organization_id,
        "eventType": "contact.created",
        "eventData": {"contactId": "c1"},
        "userId": "user-1",
    }
    body.update(overrides)
    response = client.post("/audit/record", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        """Health endpoint returns ok status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "1.0.0"


class TestRecordEndpoint:
    """Tests for recording audit events."""

    def test_record_genesis(self, client: TestClient) -> None:
        """First event of an organization has a null prevHash."""
        data = record(client)

        assert data["organizationId"] == "org-1"
        assert data["eventType"] == "contact.created"
        assert data["prevHash"] is None
        assert len(data["selfHash"]) == 64

    def test_record_links_events(self, client: TestClient) -> None:
        """Second event links to the first."""
        first = record(client)
        second = record(client, eventType="contact.updated")

        assert second["prevHash"] == first["selfHash"]

    def test_record_captures_client_provenance(self, client: TestClient) -> None:
        """IP address and user agent default to the request's."""
        data = record(client)

        assert data["ipAddress"] == "testclient"
        assert data["userAgent"] == "testclient"

    def test_record_explicit_provenance(self, client: TestClient) -> None:
        """Explicit provenance wins over the request's."""
        data = record(client, ipAddress="10.0.0.7", userAgent="importer/1.0")

        assert data["ipAddress"] == "10.0.0.7"
        assert data["userAgent"] == "importer/1.0"

    def test_invalid_event_type_rejected(self, client: TestClient) -> None:
        """Event types without a namespace are rejected with 400."""
        response = client.post(
            "/audit/record",
            json={"organizationId": "org-1", "eventType": "contact"},
        )
        assert response.status_code == 400
        assert "dot-namespaced" in response.json()["detail"]

    def test_missing_organization_rejected(self, client: TestClient) -> None:
        """Missing organization id is a validation error."""
        response = client.post("/audit/record", json={"eventType": "contact.created"})
        assert response.status_code == 422


class TestStatusEndpoint:
    """Tests for chain status."""

    def test_status(self, client: TestClient) -> None:
        """Status reflects recorded events."""
        record(client)
        last = record(client, eventType="contact.updated")

        response = client.get("/audit/status/org-1")
        assert response.status_code == 200
        data = response.json()
        assert data["totalRecords"] == 2
        assert data["lastRecordId"] == last["id"]
        assert data["chainValid"] is True


class TestVerifyEndpoints:
    """Tests for chain verification endpoints."""

    def test_verify_valid_chain(self, client: TestClient) -> None:
        """A chain written through the API verifies."""
        for _ in range(3):
            record(client)

        response = client.get("/audit/verify/org-1")
        assert response.status_code == 200
        data = response.json()
        assert data["organizationId"] == "org-1"
        assert data["valid"] is True
        assert data["totalRecords"] == 3
        assert data["errors"] == []

    def test_verify_reports_tampering(self, client: TestClient, chain: AuditChain) -> None:
        """Tampered storage shows up as errors, not as a failure."""
        for _ in range(3):
            record(client)

        stored = chain.storage._records["org-1"]
        stored[1] = stored[1].model_copy(update={"event_data": {"contactId": "evil"}})

        response = client.get("/audit/verify/org-1")
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is False
        assert data["errors"][0]["errorType"] == "self_hash"
        assert data["errors"][0]["recordIndex"] == 1
        assert "tampered" in data["errors"][0]["message"]

    def test_verify_all(self, client: TestClient, chain: AuditChain) -> None:
        """Verifying all organizations returns a summary."""
        record(client, "org-1")
        record(client, "org-2")
        record(client, "org-2")

        stored = chain.storage._records["org-2"]
        stored[1] = stored[1].model_copy(update={"prev_hash": "deadbeef"})

        response = client.get("/audit/verify")
        assert response.status_code == 200
        data = response.json()
        assert data["summary"] == {
            "totalOrganizations": 2,
            "totalRecords": 3,
            "allValid": False,
            "totalErrors": 1,
        }
        by_org = {o["organizationId"]: o for o in data["organizations"]}
        assert by_org["org-2"]["errors"][0]["errorType"] == "prev_hash"

    def test_verify_forbidden_in_production(self, client: TestClient) -> None:
        """Admin verification is disabled in production by default."""
        app.dependency_overrides[get_settings] = lambda: Settings(environment="production")

        assert client.get("/audit/verify/org-1").status_code == 403
        assert client.get("/audit/verify").status_code == 403


class TestSettings:
    """Tests for API settings."""

    def test_admin_verify_defaults(self) -> None:
        """Verification is on outside production only."""
        assert Settings(environment="development").admin_verify_allowed
        assert not Settings(environment="production").admin_verify_allowed

    def test_admin_verify_override(self) -> None:
        """An explicit flag wins over the environment default."""
        assert Settings(environment="production", admin_verify_enabled=True).admin_verify_allowed
        assert not Settings(environment="test", admin_verify_enabled=False).admin_verify_allowed

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings load from TRAILSEAL_ variables."""
        monkeypatch.setenv("TRAILSEAL_AUDIT_STORAGE_TYPE", "memory")
        monkeypatch.setenv("TRAILSEAL_ENVIRONMENT", "staging")

        settings = Settings()

        assert settings.audit_storage_type == "memory"
        assert settings.environment == "staging"
