"""
Integration tests for authentication and account endpoints
"""

import pytest

from kbportal.core.exceptions import UpstreamUnavailable
from kbportal.models.account import Account

pytestmark = pytest.mark.integration


class TestAuthentication:
    def test_missing_header(self, client):
        response = client.get("/api/v1/account/context")
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"

    def test_unknown_key(self, client):
        response = client.get("/api/v1/account/context", headers={"Authorization": "Bearer kb_nope"})
        assert response.status_code == 401

    def test_register_then_use_key(self, client):
        response = client.post("/api/v1/auth/register", json={"name": "laptop"})
        assert response.status_code == 201
        body = response.json()
        assert body["api_key"].startswith("kb_")

        context = client.get(
            "/api/v1/account/context",
            headers={"Authorization": f"Bearer {body['api_key']}"}
        ).json()
        assert context["effective_account_id"] == body["principal_id"]
        assert context["is_delegate"] is False
        assert context["credential"] is None


class TestContext:
    def test_owner_context(self, client, owner_headers, owner_account):
        body = client.get("/api/v1/account/context", headers=owner_headers).json()

        assert body["effective_account_id"] == owner_account.id
        assert body["permissions"] == ["view", "upload", "delete", "manage_users"]
        assert body["credential"]["dataset_handle"] == "ds-main"
        assert "mainkey0000000000" not in body["credential"]["api_key_preview"]

    def test_delegate_context(self, client, make_delegate, issue_key, owner_account):
        delegate = make_delegate(["view", "upload"])

        body = client.get("/api/v1/account/context", headers=issue_key(delegate.principal_id)).json()

        assert body["effective_account_id"] == owner_account.id
        assert body["principal_id"] == delegate.principal_id
        assert body["is_delegate"] is True
        assert body["permissions"] == ["view", "upload"]

    def test_inactive_delegate(self, client, make_delegate, issue_key):
        delegate = make_delegate(["view"], is_active=False)

        response = client.get("/api/v1/account/context", headers=issue_key(delegate.principal_id))

        assert response.status_code == 403
        assert response.json()["error"] == "delegate_inactive"


class TestCredentials:
    def test_first_save_creates_account(self, client, issue_key, db_session, mock_indexing_client):
        headers = issue_key("fresh-owner")

        response = client.put(
            "/api/v1/account/credentials",
            json={"dataset_handle": "ds-fresh", "api_key": "dataset-freshkey123456"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["max_documents"] == 5
        assert db_session.query(Account).filter(Account.id == "fresh-owner").count() == 1
        mock_indexing_client.verify_credentials.assert_awaited_once_with("ds-fresh", "dataset-freshkey123456")

    def test_rejected_pair(self, client, owner_headers, mock_indexing_client):
        mock_indexing_client.verify_credentials.return_value = False

        response = client.put(
            "/api/v1/account/credentials",
            json={"dataset_handle": "ds-x", "api_key": "bad"},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_indexing_service_down(self, client, owner_headers, mock_indexing_client):
        mock_indexing_client.verify_credentials.side_effect = UpstreamUnavailable("down", service="indexing")

        response = client.put(
            "/api/v1/account/credentials",
            json={"dataset_handle": "ds-x", "api_key": "key"},
            headers=owner_headers,
        )

        assert response.status_code == 502

    def test_delegate_cannot_manage_credentials(self, client, make_delegate, issue_key):
        headers = issue_key(make_delegate(["view", "upload", "delete", "manage_users"]).principal_id)

        assert client.get("/api/v1/account/credentials", headers=headers).status_code == 403
        response = client.put(
            "/api/v1/account/credentials",
            json={"dataset_handle": "ds-x", "api_key": "key"},
            headers=headers,
        )
        assert response.status_code == 403

    def test_list_credentials(self, client, owner_headers, credential):
        body = client.get("/api/v1/account/credentials", headers=owner_headers).json()
        assert [c["id"] for c in body] == [credential.id]


def test_usage(client, owner_headers, mock_indexing_client):
    mock_indexing_client.count_documents.return_value = 2

    body = client.get("/api/v1/account/usage", headers=owner_headers).json()

    assert body == {"used": 2, "limit": 5, "available": 3, "percentage": 40.0, "error": None}
