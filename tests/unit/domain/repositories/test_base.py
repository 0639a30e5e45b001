"""Tests for bucketstore/domain/repositories/base.py."""

import pytest

from bucketstore.domain.repositories.base import IdentifiableRepository, Repository


def test_repository_cannot_be_instantiated_directly():
    with pytest.raises(TypeError):
        Repository()  # type: ignore[abstract]


def test_identifiable_repository_cannot_be_instantiated_directly():
    with pytest.raises(TypeError):
        IdentifiableRepository()  # type: ignore[abstract]


def test_repository_concrete_subclass_must_implement_all_methods():
    class _Partial(Repository):
        async def get_page_by_filter(self, trace_id, filter_expr=None, paging=None, sort=None, select=None):
            return None
        # missing get_list_by_filter, get_one_random, delete_by_filter, create

    with pytest.raises(TypeError):
        _Partial()  # type: ignore[abstract]


def test_repository_full_concrete_subclass_instantiates():
    class _Full(Repository):
        async def get_page_by_filter(self, trace_id, filter_expr=None, paging=None, sort=None, select=None):
            return None
        async def get_list_by_filter(self, trace_id, filter_expr=None, sort=None, select=None): return []
        async def get_one_random(self, trace_id, filter_expr=None): return None
        async def delete_by_filter(self, trace_id, filter_expr=None): return None
        async def create(self, trace_id, item): return item

    assert _Full() is not None


def test_identifiable_repository_requires_id_operations():
    class _FilterOnly(IdentifiableRepository):
        async def get_page_by_filter(self, trace_id, filter_expr=None, paging=None, sort=None, select=None):
            return None
        async def get_list_by_filter(self, trace_id, filter_expr=None, sort=None, select=None): return []
        async def get_one_random(self, trace_id, filter_expr=None): return None
        async def delete_by_filter(self, trace_id, filter_expr=None): return None
        async def create(self, trace_id, item): return item

    with pytest.raises(TypeError):
        _FilterOnly()  # type: ignore[abstract]
