"""
Fixtures for API tests through the FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from kbportal.api.deps import get_indexing_client, get_storage
from kbportal.core.security import generate_api_key
from kbportal.database import get_db
from kbportal.main import app
from kbportal.models.api_key import APIKey
from kbportal.services import batch_service


@pytest.fixture
def client(db_session, storage, mock_indexing_client):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_indexing_client] = lambda: mock_indexing_client
    batch_service._account_locks.clear()

    yield TestClient(app)

    app.dependency_overrides.clear()
    batch_service._account_locks.clear()


@pytest.fixture
def issue_key(db_session):
    """Factory: Authorization headers for a principal"""
    def _issue(principal_id, labels=None):
        api_key, key_hash = generate_api_key()
        db_session.add(APIKey(
            principal_id=principal_id,
            key_hash=key_hash,
            key_prefix=api_key[:15],
            name="test key",
            labels=labels or [],
        ))
        db_session.commit()
        return {"Authorization": f"Bearer {api_key}"}
    return _issue


@pytest.fixture
def owner_headers(owner_account, issue_key):
    return issue_key(owner_account.id)
