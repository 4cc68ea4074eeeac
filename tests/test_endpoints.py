"""HTTP endpoint tests for the profile verifier service."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app, lifespan
from app.profiles.api_models import ProfileResponse
from app.profiles.exceptions import ConfigurationError
from app.profiles.ledger import HttpLedgerClient
from app.profiles.models import DidResolution
from app.profiles.schema_registry import BUNDLED_PLATFORMS
from app.profiles.verify import ProfileVerifier

from .conftest import (
    GITHUB_SCHEMA,
    SUBJECT_DID,
    TRUSTED_ATTESTER,
    TWITTER_SCHEMA,
    UNTRUSTED_ATTESTER,
    make_credential,
    make_document,
)

TWITTER = make_credential(TWITTER_SCHEMA, {"Twitter": "briefboards"})
GITHUB = make_credential(GITHUB_SCHEMA, {"Github": "buitrago"})


@pytest.fixture
def verifier(ledger, registry):
    verifier = ProfileVerifier(ledger, registry, trusted_attesters=frozenset({TRUSTED_ATTESTER}))
    verifier.fetcher.fetch = AsyncMock(return_value=[TWITTER, GITHUB])
    return verifier


STATE_ATTRS = ("ledger", "registry", "verifier")


@pytest.fixture
def app_state():
    """app.state, with the collaborator attributes restored after the test."""
    saved = {name: getattr(app.state, name, None) for name in STATE_ATTRS}
    yield app.state
    for name, value in saved.items():
        if value is None:
            if hasattr(app.state, name):
                delattr(app.state, name)
        else:
            setattr(app.state, name, value)


@pytest.fixture
def client(verifier, registry, app_state):
    """Test client with request-time collaborators installed on app.state."""
    app_state.ledger = HttpLedgerClient()
    app_state.registry = registry
    app_state.verifier = verifier
    return TestClient(app, raise_server_exceptions=False)


def verify(client, **body):
    payload = {"web3Name": "buitrago", "username": "briefboards", "platformName": "twitter"}
    payload.update(body)
    return client.post("/profiles/verifyProfile", json=payload)


class TestHealth:

    def test_health_check(self, client):
        response = client.get("/profiles/healthCheck")
        assert response.status_code == 200
        assert response.json() is True

    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"ok": True}

    def test_version(self, client):
        assert "git_sha" in client.get("/version").json()


class TestVerifyProfileEndpoint:

    def test_verified_profile(self, client):
        response = verify(client)
        assert response.status_code == 200
        assert response.json() == {
            "links": {
                "twitter": "https://twitter.com/briefboards",
                "github": "https://github.com/buitrago",
            }
        }

    def test_snake_case_field_names(self, client):
        response = client.post("/profiles/verifyProfile", json={
            "web3_name": "buitrago", "username": "briefboards", "platform": "twitter",
        })
        assert response.status_code == 200

    def test_missing_parameters(self, client):
        response = client.post("/profiles/verifyProfile", json={"web3Name": "buitrago"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_unsupported_platform(self, client):
        response = verify(client, platformName="myspace")
        assert response.status_code == 400
        assert "myspace" in response.json()["error"]["message"]

    def test_unknown_web3name(self, client):
        response = verify(client, web3Name="nobody")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_no_matching_credential(self, client):
        response = verify(client, username="someoneelse")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NO_MATCH"

    def test_deleted_did(self, client, ledger):
        ledger.documents[SUBJECT_DID] = DidResolution(document=None, deactivated=True)
        response = verify(client)
        assert response.status_code == 410
        assert response.json()["error"]["code"] == "DEACTIVATED"

    def test_ambiguous_endpoints(self, client, ledger):
        ledger.documents[SUBJECT_DID] = DidResolution(document=make_document(endpoint_count=2))
        response = verify(client)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_untrusted_primary(self, client, ledger):
        ledger.attesters[TWITTER.root_hash] = UNTRUSTED_ATTESTER
        response = verify(client)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "UNTRUSTED_ISSUER"

    def test_untrusted_secondary_is_dropped(self, client, ledger):
        ledger.attesters[GITHUB.root_hash] = UNTRUSTED_ATTESTER
        response = verify(client)
        assert response.status_code == 200
        assert response.json() == {"links": {"twitter": "https://twitter.com/briefboards"}}

    def test_ledger_failure(self, client, ledger):
        ledger.failing.add(TWITTER.root_hash)
        response = verify(client)
        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_FAILED"

    def test_unexpected_error(self, client, verifier):
        verifier.fetcher.fetch = AsyncMock(side_effect=RuntimeError("boom"))
        response = verify(client)
        assert response.status_code == 500
        assert response.json() == {
            "error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}
        }


class TestAdminEndpoint:

    def test_admin_reports_configuration(self, client):
        response = client.get("/admin")
        assert response.status_code == 200
        data = response.json()
        assert data["ledger"]["connected"] is False
        assert data["trust"]["trusted_attester_count"] == 1
        assert [p["platform"] for p in data["trust"]["supported_platforms"]] == \
            ["email", "twitter", "github"]
        assert "credential_max_size_bytes" in data["policy"]
        assert "log_level" in data["environment"]

    def test_admin_disabled(self, client):
        with patch("app.main.ADMIN_ENDPOINT_ENABLED", False):
            response = client.get("/admin")
        assert response.status_code == 404


class TestLifespan:

    @pytest.mark.asyncio
    async def test_startup_connects_ledger(self, app_state):
        with patch("app.main.TRUSTED_ATTESTER_URIS", frozenset({TRUSTED_ATTESTER})), \
                patch("app.main.LEDGER_ENDPOINT", "https://ledger.example.com"):
            async with lifespan(app):
                ledger = app.state.ledger
                assert ledger.connected
                assert ledger.address == "https://ledger.example.com"
                assert len(app.state.registry) > 0
                assert app.state.verifier.trusted_attesters == frozenset({TRUSTED_ATTESTER})
            assert not ledger.connected

    @pytest.mark.asyncio
    async def test_startup_requires_trusted_attesters(self, app_state):
        with patch("app.main.TRUSTED_ATTESTER_URIS", frozenset()):
            with pytest.raises(ConfigurationError, match="trusted attester"):
                async with lifespan(app):
                    pass

    @pytest.mark.asyncio
    async def test_startup_requires_ledger_endpoint(self, app_state):
        with patch("app.main.TRUSTED_ATTESTER_URIS", frozenset({TRUSTED_ATTESTER})), \
                patch("app.main.LEDGER_ENDPOINT", ""):
            with pytest.raises(ConfigurationError, match="LEDGER_ENDPOINT"):
                async with lifespan(app):
                    pass


class TestRequestId:

    def test_generated_request_id(self, client):
        response = client.get("/profiles/healthCheck")
        assert len(response.headers["X-Request-ID"]) == 32

    def test_incoming_request_id_echoed(self, client):
        response = client.get("/healthz", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_on_error_response(self, client):
        response = verify(client, web3Name="nobody")
        assert response.status_code == 404
        assert response.headers["X-Request-ID"]


class TestOpenApi:

    def test_profile_example_uses_bundled_platforms(self):
        schema = ProfileResponse.model_json_schema()
        example = schema["properties"]["links"]["examples"][0]
        assert set(example) <= {d.platform for d in BUNDLED_PLATFORMS}


class TestAppStateIsolation:
    """Runs after the tests above; none of them may leak collaborators."""

    def test_app_state_restored(self):
        for name in STATE_ATTRS:
            assert not hasattr(app.state, name)
