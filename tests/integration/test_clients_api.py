"""Integration tests for the client administration endpoints."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from campauth.core.config import Settings
from campauth.main import create_app

pytestmark = pytest.mark.integration

CLIENTS_URL = "/api/v1/oauth/clients"

PAYLOAD = {
    "tenant_id": "cg_riverbend",
    "name": "Channel Manager",
    "redirect_uris": ["https://integrations.example.com/callback"],
    "scopes": ["reservations:read", "reservations:write"],
}


class TestRegistration:
    def test_register_confidential_client(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(CLIENTS_URL, json=PAYLOAD, headers=admin_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["client"]["client_id"].startswith("cs_")
        assert body["client"]["scopes"] == PAYLOAD["scopes"]
        assert body["client"]["grant_types"] == ["client_credentials"]
        assert "client_secret_hash" not in body["client"]
        assert len(body["client_secret"]) == 64

    def test_register_public_client(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            CLIENTS_URL,
            json={**PAYLOAD, "is_confidential": False, "grant_types": ["authorization_code"]},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["client_secret"] is None

    def test_unknown_scope(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.post(
            CLIENTS_URL,
            json={**PAYLOAD, "scopes": ["admin:all"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_scope"

    def test_public_client_cannot_register_client_credentials(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            CLIENTS_URL,
            json={
                **PAYLOAD,
                "is_confidential": False,
                "grant_types": ["client_credentials"],
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_unknown_grant_type(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            CLIENTS_URL,
            json={**PAYLOAD, "grant_types": ["implicit"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_relative_redirect_uri_rejected(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            CLIENTS_URL,
            json={**PAYLOAD, "redirect_uris": ["/callback"]},
            headers=admin_headers,
        )

        assert response.status_code == 422


class TestAdminKey:
    def test_missing_key(self, client: TestClient) -> None:
        response = client.post(CLIENTS_URL, json=PAYLOAD)

        assert response.status_code == 401

    def test_wrong_key(self, client: TestClient) -> None:
        response = client.post(
            CLIENTS_URL, json=PAYLOAD, headers={"X-Admin-Key": "wrong-key-0123456789"}
        )

        assert response.status_code == 401

    def test_administration_disabled_without_key(self) -> None:
        app = create_app(Settings(admin_api_key=None, oauth2_code_sweep_interval=0))

        with TestClient(app) as test_client:
            response = test_client.post(
                CLIENTS_URL, json=PAYLOAD, headers={"X-Admin-Key": "anything-at-all-123"}
            )

        assert response.status_code == 403


class TestLifecycle:
    def test_rotate_secret(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        registration = client.post(CLIENTS_URL, json=PAYLOAD, headers=admin_headers).json()
        client_db_id = registration["client"]["id"]
        client_id = registration["client"]["client_id"]
        tokens = client.post(
            "/oauth/token",
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": registration["client_secret"],
            },
        ).json()

        response = client.post(
            f"{CLIENTS_URL}/{client_db_id}/rotate-secret", headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["client_id"] == client_id
        assert body["client_secret"] != registration["client_secret"]
        introspection = client.post(
            "/oauth/introspect", data={"token": tokens["access_token"]}
        )
        assert introspection.json() == {"active": False}

    def test_rotate_unknown_client(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            f"{CLIENTS_URL}/{uuid4()}/rotate-secret", headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["error"] == "invalid_client"

    def test_rotate_public_client(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        registration = client.post(
            CLIENTS_URL, json={**PAYLOAD, "is_confidential": False}, headers=admin_headers
        ).json()

        response = client.post(
            f"{CLIENTS_URL}/{registration['client']['id']}/rotate-secret",
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_deactivate(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        registration = client.post(CLIENTS_URL, json=PAYLOAD, headers=admin_headers).json()

        response = client.post(
            f"{CLIENTS_URL}/{registration['client']['id']}/deactivate",
            headers=admin_headers,
        )

        assert response.status_code == 204
        token = client.post(
            "/oauth/token",
            data={
                "grant_type": "client_credentials",
                "client_id": registration["client"]["client_id"],
                "client_secret": registration["client_secret"],
            },
        )
        assert token.status_code == 401

    def test_deactivate_unknown_client(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(f"{CLIENTS_URL}/{uuid4()}/deactivate", headers=admin_headers)

        assert response.status_code == 404
