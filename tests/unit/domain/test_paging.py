"""Tests for bucketstore/domain/models/paging.py."""

from bucketstore.domain.models.paging import DataPage, PagingParams


# --- get_skip ---

def test_get_skip_returns_min_when_not_set():
    assert PagingParams().get_skip(-1) == -1


def test_get_skip_returns_value_when_set():
    assert PagingParams(skip=20).get_skip(-1) == 20


def test_get_skip_clamps_below_min():
    assert PagingParams(skip=-5).get_skip(0) == 0


def test_get_skip_allows_explicit_zero():
    assert PagingParams(skip=0).get_skip(-1) == 0


# --- get_take ---

def test_get_take_defaults_to_max():
    assert PagingParams().get_take(100) == 100


def test_get_take_is_capped_at_max():
    assert PagingParams(take=500).get_take(100) == 100


def test_get_take_keeps_smaller_value():
    assert PagingParams(take=10).get_take(100) == 10


def test_get_take_negative_becomes_zero():
    assert PagingParams(take=-1).get_take(100) == 0


# --- DataPage ---

def test_data_page_defaults():
    page = DataPage()
    assert page.total is None
    assert page.data == []


def test_data_page_keeps_items_in_order():
    page = DataPage(total=2, data=[{"id": "1"}, {"id": "2"}])
    assert [item["id"] for item in page.data] == ["1", "2"]
    assert page.total == 2
