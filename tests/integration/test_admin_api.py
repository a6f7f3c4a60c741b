"""
Integration tests for administrator endpoints
"""

import pytest

pytestmark = pytest.mark.integration


@pytest.fixture
def admin_headers(issue_key):
    return issue_key("site-admin", labels=["admin"])


def test_non_admin_refused(client, owner_headers, owner_account):
    response = client.put(
        f"/api/v1/admin/accounts/{owner_account.id}/plan",
        json={"account_type": "paid"},
        headers=owner_headers,
    )
    assert response.status_code == 403


def test_set_plan(client, admin_headers, owner_account):
    response = client.put(
        f"/api/v1/admin/accounts/{owner_account.id}/plan",
        json={"account_type": "paid"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["account_type"] == "paid"
    assert [c["max_documents"] for c in body["credentials"]] == [50]


def test_unknown_plan(client, admin_headers, owner_account):
    response = client.put(
        f"/api/v1/admin/accounts/{owner_account.id}/plan",
        json={"account_type": "gold"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_update_credential_quota(client, admin_headers, credential):
    response = client.patch(
        f"/api/v1/admin/credentials/{credential.id}",
        json={"max_documents": 25},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["max_documents"] == 25


def test_create_dataset(client, admin_headers, mock_indexing_client):
    mock_indexing_client.create_dataset.return_value = {"id": "ds-new", "name": "Team KB"}

    response = client.post("/api/v1/admin/datasets", json={"name": "Team KB"}, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["id"] == "ds-new"
    mock_indexing_client.create_dataset.assert_awaited_once_with("Team KB")
