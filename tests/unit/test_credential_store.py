"""
Unit tests for the account credential store
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from kbportal.core.exceptions import LookupFailed, NotFoundError, UpstreamUnavailable, ValidationError
from kbportal.models.account import Account
from kbportal.models.credential import Credential
from kbportal.services.credential_store import CredentialStore, default_max_documents


@pytest.fixture
def store(db_session, mock_indexing_client):
    return CredentialStore(db_session, mock_indexing_client)


def test_default_quota_table():
    assert default_max_documents("free") == 5
    assert default_max_documents("trial") == 10
    assert default_max_documents("paid") == 50
    assert default_max_documents(None) == 5


class TestRead:
    def test_default_is_oldest(self, store, owner_account, credential):
        assert store.get_credential(owner_account.id) == credential

    def test_by_id(self, store, owner_account, credential):
        assert store.get_credential(owner_account.id, credential.id) == credential

    def test_foreign_id_not_returned(self, store, owner_account, credential):
        assert store.get_credential("someone-else", credential.id) is None

    def test_account_without_credentials(self, store):
        assert store.get_credentials("nobody") == []
        assert store.get_credential("nobody") is None

    def test_database_error(self, db_session, mock_indexing_client):
        db = Mock(wraps=db_session)
        db.query = Mock(side_effect=OperationalError("SELECT", {}, Exception("db down")))

        with pytest.raises(LookupFailed):
            CredentialStore(db, mock_indexing_client).get_credentials("acct")


class TestSave:
    @pytest.mark.asyncio
    async def test_first_save_creates_account(self, store, db_session, mock_indexing_client):
        record = await store.save_credential("new-owner", "ds-new", "dataset-newkey", name="KB")

        mock_indexing_client.verify_credentials.assert_awaited_once_with("ds-new", "dataset-newkey")
        account = db_session.query(Account).filter(Account.id == "new-owner").one()
        assert account.account_type == "free"
        assert record.account_id == "new-owner"
        assert record.dataset_handle == "ds-new"
        assert record.max_documents == 5

    @pytest.mark.asyncio
    async def test_update_default_keeps_quota(self, store, db_session, owner_account, credential):
        db_session.query(Credential).filter(Credential.id == credential.id).update({"max_documents": 42})
        db_session.commit()

        record = await store.save_credential(owner_account.id, "ds-moved", "dataset-rotated")

        assert record.id == credential.id
        assert record.dataset_handle == "ds-moved"
        assert record.max_documents == 42
        assert len(store.get_credentials(owner_account.id)) == 1

    @pytest.mark.asyncio
    async def test_create_new_knowledge_base(self, store, owner_account):
        record = await store.save_credential(owner_account.id, "ds-second", "dataset-second", create_new=True)

        credentials = store.get_credentials(owner_account.id)
        assert len(credentials) == 2
        assert record.id in {c.id for c in credentials}

    @pytest.mark.asyncio
    async def test_rejected_pair_not_persisted(self, store, db_session, mock_indexing_client):
        mock_indexing_client.verify_credentials.return_value = False

        with pytest.raises(ValidationError):
            await store.save_credential("new-owner", "ds-bad", "wrong-key")

        assert db_session.query(Account).count() == 0

    @pytest.mark.asyncio
    async def test_unreachable_indexing_service(self, store, mock_indexing_client):
        mock_indexing_client.verify_credentials.side_effect = UpstreamUnavailable("down", service="indexing")

        with pytest.raises(UpstreamUnavailable):
            await store.save_credential("new-owner", "ds", "key")

    @pytest.mark.asyncio
    async def test_blank_fields_rejected(self, store, mock_indexing_client):
        with pytest.raises(ValidationError):
            await store.save_credential("new-owner", "  ", "key")
        mock_indexing_client.verify_credentials.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_credential_id(self, store, owner_account):
        with pytest.raises(NotFoundError):
            await store.save_credential(owner_account.id, "ds", "key", credential_id="not-mine")


class TestAdmin:
    def test_set_plan_applies_default_quota(self, store, owner_account):
        account = store.set_account_plan(owner_account.id, "paid")

        assert account.account_type == "paid"
        assert [c.max_documents for c in account.credentials] == [50]

    def test_set_plan_with_explicit_quota(self, store, owner_account):
        account = store.set_account_plan(owner_account.id, "trial", max_documents=7)
        assert [c.max_documents for c in account.credentials] == [7]

    def test_set_plan_creates_missing_account(self, store):
        account = store.set_account_plan("fresh", "trial")
        assert account.account_type == "trial"
        assert account.credentials == []

    def test_unknown_plan(self, store, owner_account):
        with pytest.raises(ValidationError):
            store.set_account_plan(owner_account.id, "platinum")

    def test_negative_quota_rejected(self, store, credential):
        with pytest.raises(ValidationError):
            store.update_credential(credential.id, max_documents=-1)

    def test_update_credential(self, store, credential):
        record = store.update_credential(credential.id, max_documents=12, name="Renamed")
        assert record.max_documents == 12
        assert record.name == "Renamed"
        assert record.dataset_handle == credential.dataset_handle

    def test_update_missing_credential(self, store):
        with pytest.raises(NotFoundError):
            store.update_credential("missing", max_documents=1)
