"""
Integration tests for batch upload, listing, and deletion
"""

import pytest

from kbportal.core.exceptions import UpstreamUnavailable
from kbportal.models.document import Document

pytestmark = pytest.mark.integration


def _files(*names):
    return [("files", (name, b"%PDF-1.4 content of " + name.encode(), "application/pdf")) for name in names]


class TestUpload:
    def test_batch_upload(self, client, owner_headers, storage, mock_indexing_client, db_session):
        response = client.post(
            "/api/v1/documents",
            files=_files("a.pdf", "b.pdf"),
            data={"indexing_technique": "economy"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 2
        assert body["failure_count"] == 0
        assert [r["status"] for r in body["results"]] == ["completed", "completed"]
        assert len(storage.files) == 2
        assert db_session.query(Document).filter(Document.status == "completed").count() == 2
        assert mock_indexing_client.create_document.await_args.args[5] == "economy"

    def test_partial_success_is_200(self, client, owner_headers, mock_indexing_client):
        mock_indexing_client.create_document.side_effect = [
            "idx-1",
            UpstreamUnavailable("down", service="indexing"),
            UpstreamUnavailable("down", service="indexing"),
        ]

        response = client.post("/api/v1/documents", files=_files("a.pdf", "b.pdf"), headers=owner_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 1
        assert body["failure_count"] == 1
        assert body["results"][1]["cause"] == "indexing_unavailable"

    def test_view_only_delegate_gets_403(self, client, make_delegate, issue_key, mock_indexing_client):
        headers = issue_key(make_delegate(["view"]).principal_id)

        response = client.post("/api/v1/documents", files=_files("a.pdf"), headers=headers)

        assert response.status_code == 403
        assert response.json()["results"][0]["cause"] == "permission_denied"
        mock_indexing_client.create_document.assert_not_awaited()

    def test_quota_full_gets_429(self, client, owner_headers, mock_indexing_client):
        mock_indexing_client.count_documents.return_value = 5

        response = client.post("/api/v1/documents", files=_files("a.pdf", "b.pdf"), headers=owner_headers)

        assert response.status_code == 429
        assert response.json()["rejected_count"] == 2

    def test_unsupported_type_rejected(self, client, owner_headers):
        response = client.post(
            "/api/v1/documents",
            files=[("files", ("tool.exe", b"MZ", "application/octet-stream"))],
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["results"][0]["cause"] == "validation_error"


class TestListAndDelete:
    def test_list_after_upload(self, client, owner_headers):
        client.post("/api/v1/documents", files=_files("a.pdf"), headers=owner_headers)

        body = client.get("/api/v1/documents", headers=owner_headers).json()

        assert body["pagination"]["total"] == 1
        assert body["data"][0]["filename"] == "a.pdf"
        assert body["data"][0]["status"] == "completed"

    def test_delete(self, client, owner_headers, db_session, mock_indexing_client):
        upload = client.post("/api/v1/documents", files=_files("a.pdf"), headers=owner_headers).json()
        document_id = upload["results"][0]["document_id"]

        response = client.delete(f"/api/v1/documents/{document_id}", headers=owner_headers)

        assert response.status_code == 204
        assert db_session.query(Document).count() == 0
        mock_indexing_client.delete_document.assert_awaited_once()

    def test_delete_missing(self, client, owner_headers):
        assert client.delete("/api/v1/documents/nope", headers=owner_headers).status_code == 404

    def test_delegate_without_delete(self, client, owner_headers, make_delegate, issue_key):
        upload = client.post("/api/v1/documents", files=_files("a.pdf"), headers=owner_headers).json()
        headers = issue_key(make_delegate(["view", "upload"]).principal_id)

        response = client.delete(f"/api/v1/documents/{upload['results'][0]['document_id']}", headers=headers)

        assert response.status_code == 403
