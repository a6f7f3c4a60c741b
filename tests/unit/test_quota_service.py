"""
Unit tests for the live document quota gate
"""

from unittest.mock import AsyncMock

import pytest

from kbportal.core.exceptions import QuotaExceeded, UpstreamUnavailable
from kbportal.services.credential_store import CredentialRecord
from kbportal.services.quota_service import QuotaService


def _credential(max_documents):
    return CredentialRecord(
        id="cred-1",
        account_id="acct-1",
        name=None,
        dataset_handle="ds-1",
        api_key="dataset-key",
        max_documents=max_documents,
    )


def _service(count=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.count_documents.side_effect = error
    else:
        client.count_documents.return_value = count
    return QuotaService(client), client


@pytest.mark.asyncio
async def test_room_left():
    service, client = _service(count=3)

    status = await service.check_quota("acct-1", _credential(5))

    assert status.allowed is True
    assert status.remaining == 2
    assert status.used == 3
    assert status.limit == 5
    assert status.error is None
    client.count_documents.assert_awaited_once_with("ds-1", "dataset-key")


@pytest.mark.asyncio
@pytest.mark.parametrize("count,max_documents", [(5, 5), (6, 5), (0, 0), (10, 3)])
async def test_never_allowed_when_count_reaches_max(count, max_documents):
    service, _ = _service(count=count)

    status = await service.check_quota("acct-1", _credential(max_documents))

    assert status.allowed is False
    assert status.remaining == 0


@pytest.mark.asyncio
async def test_count_is_read_on_every_call():
    service, client = _service(count=1)
    credential = _credential(5)

    await service.check_quota("acct-1", credential)
    await service.check_quota("acct-1", credential)

    assert client.count_documents.await_count == 2


@pytest.mark.asyncio
async def test_fails_closed_when_indexing_unreachable():
    service, _ = _service(error=UpstreamUnavailable("down", service="indexing"))

    status = await service.check_quota("acct-1", _credential(5))

    assert status.allowed is False
    assert status.remaining == 0
    assert status.used is None
    assert "down" in status.error


@pytest.mark.asyncio
async def test_missing_credential_not_allowed():
    service, client = _service(count=0)

    status = await service.check_quota("acct-1", None)

    assert status.allowed is False
    assert status.error
    client.count_documents.assert_not_awaited()


@pytest.mark.asyncio
async def test_require_quota_raises():
    service, _ = _service(count=5)

    with pytest.raises(QuotaExceeded) as exc_info:
        await service.require_quota("acct-1", _credential(5))
    assert exc_info.value.details == {"limit": 5, "used": 5}


@pytest.mark.asyncio
async def test_get_usage():
    service, _ = _service(count=2)

    usage = await service.get_usage("acct-1", _credential(8))

    assert usage == {"used": 2, "limit": 8, "available": 6, "percentage": 25.0, "error": None}


@pytest.mark.asyncio
async def test_get_usage_is_fail_soft():
    service, _ = _service(error=UpstreamUnavailable("timeout", service="indexing"))

    usage = await service.get_usage("acct-1", _credential(8))

    assert usage["used"] is None
    assert usage["percentage"] == 0.0
    assert usage["error"]
