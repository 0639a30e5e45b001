"""Integration tests for DummyPersistence against a live Couchbase cluster.

Skipped unless COUCHBASE_URI or COUCHBASE_HOST is set (directly or via
.env).  The bucket is created when missing and flushed before each test,
so point these at a disposable cluster.
"""

import pytest

from bucketstore.domain.models.paging import PagingParams
from bucketstore.infrastructure.config import CouchbaseSettings
from support import Dummy, DummyPersistence

settings = CouchbaseSettings()

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not settings.is_configured, reason="Couchbase is not configured"),
]

DUMMY1 = Dummy(id="1", key="Key 1", content="Content 1")
DUMMY2 = Dummy(id="2", key="Key 2", content="Content 2")


@pytest.fixture()
async def persistence():
    persistence = DummyPersistence()
    persistence.configure(settings.to_config(auto_create=True))
    await persistence.open()
    await persistence.clear()
    yield persistence
    await persistence.close()


async def test_crud_operations(persistence):
    created = await persistence.create(None, DUMMY1)
    assert created == DUMMY1
    await persistence.create(None, DUMMY2)

    page = await persistence.get_page_by_params(None, None, PagingParams(total=True))
    assert len(page.data) == 2

    updated = await persistence.update(None, created.model_copy(update={"content": "Updated Content 1"}))
    assert updated.content == "Updated Content 1"

    partial = await persistence.update_partially(None, "1", {"content": "Partially Updated Content 1"})
    assert partial.content == "Partially Updated Content 1"
    assert partial.key == "Key 1"

    deleted = await persistence.delete_by_id(None, "1")
    assert deleted.id == "1"
    assert await persistence.get_one_by_id(None, "1") is None


async def test_batch_operations(persistence):
    await persistence.create(None, DUMMY1)
    await persistence.create(None, DUMMY2)

    items = await persistence.get_list_by_ids(None, ["1", "2"])
    assert sorted(item.id for item in items) == ["1", "2"]

    await persistence.delete_by_ids(None, ["1", "2"])
    assert await persistence.get_list_by_ids(None, ["1", "2"]) == []


async def test_page_by_key_and_random(persistence):
    await persistence.create(None, DUMMY1)
    await persistence.create(None, DUMMY2)

    page = await persistence.get_page_by_params(None, {"key": "Key 2"}, PagingParams(take=10))
    assert page.data == [DUMMY2]

    item = await persistence.get_one_random(None)
    assert item in (DUMMY1, DUMMY2)

    await persistence.delete_by_filter(None)
    assert await persistence.get_list_by_filter(None) == []
