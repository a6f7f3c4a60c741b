"""
Integration tests for delegate management
"""

import pytest

pytestmark = pytest.mark.integration


def test_create_list_update_delete(client, owner_headers, owner_account):
    created = client.post(
        "/api/v1/delegates",
        json={"email": "helper@example.com", "permissions": ["view", "upload"]},
        headers=owner_headers,
    )
    assert created.status_code == 201
    delegate = created.json()
    assert delegate["parent_account_id"] == owner_account.id
    assert delegate["api_key"].startswith("kb_")

    delegate_headers = {"Authorization": f"Bearer {delegate['api_key']}"}
    context = client.get("/api/v1/account/context", headers=delegate_headers).json()
    assert context["effective_account_id"] == owner_account.id
    assert context["permissions"] == ["view", "upload"]

    listed = client.get("/api/v1/delegates", headers=owner_headers).json()
    assert [d["id"] for d in listed["data"]] == [delegate["id"]]
    assert "api_key" not in listed["data"][0]

    updated = client.patch(
        f"/api/v1/delegates/{delegate['id']}",
        json={"is_active": False},
        headers=owner_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False
    assert client.get("/api/v1/account/context", headers=delegate_headers).status_code == 403

    assert client.delete(f"/api/v1/delegates/{delegate['id']}", headers=owner_headers).status_code == 204
    assert client.get("/api/v1/delegates", headers=owner_headers).json()["data"] == []


def test_unknown_permission(client, owner_headers):
    response = client.post(
        "/api/v1/delegates",
        json={"email": "x@example.com", "permissions": ["view", "everything"]},
        headers=owner_headers,
    )
    assert response.status_code == 400


def test_requires_manage_users(client, make_delegate, issue_key):
    headers = issue_key(make_delegate(["view", "upload", "delete"]).principal_id)

    assert client.get("/api/v1/delegates", headers=headers).status_code == 403
    assert client.post("/api/v1/delegates", json={"email": "x@example.com"}, headers=headers).status_code == 403


def test_manager_cannot_hand_out_more_than_it_has(client, make_delegate, issue_key):
    manager = make_delegate(["view", "manage_users"])
    headers = issue_key(manager.principal_id)

    created = client.post(
        "/api/v1/delegates",
        json={"email": "x@example.com", "permissions": ["view", "upload"]},
        headers=headers,
    )
    own = client.patch(
        f"/api/v1/delegates/{manager.id}",
        json={"permissions": ["view", "upload", "delete", "manage_users"]},
        headers=headers,
    )

    assert created.status_code == 403
    assert own.status_code == 403
