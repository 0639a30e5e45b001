"""Pytest fixtures shared by the unit and integration suites."""

from __future__ import annotations

import pytest

from support import (
    DummyMapPersistence,
    DummyPersistence,
    FakeCluster,
    FakeCollection,
    shared_connection,
)


@pytest.fixture()
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture()
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture()
def connection(cluster, collection):
    return shared_connection(cluster, collection)


@pytest.fixture()
async def persistence(connection) -> DummyPersistence:
    """An opened DummyPersistence over the in-memory fakes."""
    persistence = DummyPersistence()
    persistence.set_references(connection=connection)
    await persistence.open()
    return persistence


@pytest.fixture()
async def map_persistence(connection) -> DummyMapPersistence:
    persistence = DummyMapPersistence()
    persistence.set_references(connection=connection)
    await persistence.open()
    return persistence
