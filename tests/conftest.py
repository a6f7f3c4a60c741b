"""
Pytest configuration and shared fixtures for KB Portal tests

Provides:
- In-memory SQLite sessions
- Accounts, credentials, and delegates
- In-memory storage backend
- Mock indexing client
"""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from typing import Dict, Generator, Iterable, Optional
from unittest.mock import AsyncMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from kbportal.database import Base
from kbportal.models.account import Account
from kbportal.models.credential import Credential
from kbportal.models.delegate import Delegate
from kbportal.services.credential_store import CredentialRecord, CredentialStore
from kbportal.services.delegate_directory import DelegateDirectory
from kbportal.services.resolver import EffectiveAccountResolver
from kbportal.services.ingestion_service import UploadedFile
from kbportal.storage.base import StorageBackend

OWNER_ID = "owner-principal-1"


@pytest.fixture
def test_db_engine_sqlite():
    """Create in-memory SQLite database (fast, isolated per test)"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_db_engine_sqlite) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine_sqlite)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner_account(db_session) -> Account:
    """Account with one credential allowing 5 documents"""
    account = Account(id=OWNER_ID, account_type="free", name="Owner")
    db_session.add(account)
    db_session.add(Credential(
        account_id=OWNER_ID,
        name="Main knowledge base",
        dataset_handle="ds-main",
        api_key="dataset-mainkey0000000000",
        max_documents=5,
    ))
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def credential(owner_account) -> CredentialRecord:
    return CredentialRecord.from_model(owner_account.credentials[0])


@pytest.fixture
def make_delegate(db_session, owner_account):
    """Factory: delegate of the owner account with the given permission names"""
    counter = {"n": 0}

    def _make(permissions: Iterable[str], is_active: bool = True, principal_id: Optional[str] = None) -> Delegate:
        counter["n"] += 1
        delegate = Delegate(
            principal_id=principal_id or f"delegate-principal-{counter['n']}",
            parent_account_id=owner_account.id,
            email=f"delegate{counter['n']}@example.com",
            permissions=list(permissions),
            is_active=is_active,
        )
        db_session.add(delegate)
        db_session.commit()
        db_session.refresh(delegate)
        return delegate

    return _make


@pytest.fixture
def mock_indexing_client():
    """Indexing client with an empty dataset that accepts everything"""
    client = AsyncMock()
    client.count_documents.return_value = 0
    client.create_document.side_effect = [f"idx-{i}" for i in range(1, 50)]
    client.attach_metadata.return_value = None
    client.verify_credentials.return_value = True
    client.delete_document.return_value = None
    return client


@pytest.fixture
def resolver(db_session, mock_indexing_client) -> EffectiveAccountResolver:
    return EffectiveAccountResolver(
        DelegateDirectory(db_session),
        CredentialStore(db_session, mock_indexing_client),
    )


@pytest.fixture
def owner_context(resolver, owner_account):
    return resolver.resolve(owner_account.id)


class InMemoryStorage(StorageBackend):
    """Storage backend keeping files in a dict; fail=True makes save raise"""

    def __init__(self, fail: bool = False):
        self.files: Dict[str, bytes] = {}
        self.fail = fail

    def save(self, content, account_id, document_id, filename, content_type=None):
        if self.fail:
            raise ConnectionError("object store unreachable")
        key = self.document_key(account_id, document_id, filename)
        self.files[key] = content
        return key

    def get_url(self, storage_path, account_id):
        return f"https://files.example.com/{storage_path}"

    def delete(self, storage_path, account_id):
        self.files.pop(storage_path, None)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


def make_file(name: str = "report.pdf", content: bytes = b"%PDF-1.4 test content") -> UploadedFile:
    return UploadedFile(filename=name, content=content, content_type="application/pdf")


@pytest.fixture
def sample_files():
    return [make_file(f"file{i}.pdf") for i in range(1, 6)]


@pytest.fixture
def make_upload():
    return make_file


@pytest.fixture
def failing_storage() -> InMemoryStorage:
    return InMemoryStorage(fail=True)
