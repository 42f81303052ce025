"""
Unit tests for the in-memory short-URL index.

Covers:
    - insert (success, code collision, URL collision)
    - reverse-index lookups
    - evict removes record, bucket and reverse entry together
    - dump shape and load consistency checks
"""

import pytest

from linkpulse.analytics.analytics import AnalyticsBucket
from linkpulse.models import ShortUrlRecord
from linkpulse.storage.storage import Storage


def _record(code, url, created_at=1000):
    return ShortUrlRecord(short_code=code, original_url=url, created_at=created_at)


def test_insert_and_lookup(storage):
    assert storage.insert(_record("abc123", "https://example.com"), AnalyticsBucket()) is True
    assert storage.get_record("abc123").original_url == "https://example.com"
    assert storage.get_bucket("abc123") is not None
    assert storage.find_code_by_url("https://example.com") == "abc123"
    assert len(storage) == 1


def test_insert_rejects_existing_code(storage):
    storage.insert(_record("abc123", "https://one.com"), AnalyticsBucket())
    assert storage.insert(_record("abc123", "https://two.com"), AnalyticsBucket()) is False
    assert storage.get_record("abc123").original_url == "https://one.com"
    assert storage.find_code_by_url("https://two.com") is None


def test_insert_rejects_already_mapped_url(storage):
    storage.insert(_record("abc123", "https://one.com"), AnalyticsBucket())
    assert storage.insert(_record("zzz999", "https://one.com"), AnalyticsBucket()) is False
    assert storage.get_record("zzz999") is None
    assert storage.find_code_by_url("https://one.com") == "abc123"


def test_get_missing_returns_none(storage):
    assert storage.get_record("missing") is None
    assert storage.get_bucket("missing") is None
    assert storage.find_code_by_url("https://notfound.com") is None


def test_evict_removes_all_three_entries(storage):
    storage.insert(_record("abc123", "https://example.com"), AnalyticsBucket())
    assert storage.evict("abc123") is True
    assert storage.get_record("abc123") is None
    assert storage.get_bucket("abc123") is None
    assert storage.find_code_by_url("https://example.com") is None
    assert storage.reverse_size() == 0
    assert storage.evict("abc123") is False


def test_records_keep_insertion_order(storage):
    for code in ("c1", "c2", "c3"):
        storage.insert(_record(code, f"https://{code}.com"), AnalyticsBucket())
    assert [r.short_code for r in storage.records()] == ["c1", "c2", "c3"]


def test_dump_lists_parallel_pairs(storage):
    storage.insert(_record("abc123", "https://example.com"), AnalyticsBucket())
    dumped = storage.dump()
    assert dumped["url_to_short_code"] == [["https://example.com", "abc123"]]
    assert dumped["url_database"][0][0] == "abc123"
    assert dumped["url_database"][0][1]["original_url"] == "https://example.com"
    assert dumped["analytics"][0][0] == "abc123"
    assert dumped["analytics"][0][1]["history"] == []


def test_load_replaces_index(storage):
    storage.insert(_record("old111", "https://old.com"), AnalyticsBucket())
    storage.load(
        {"new222": _record("new222", "https://new.com")},
        {"new222": AnalyticsBucket()},
        {"https://new.com": "new222"},
    )
    assert storage.get_record("old111") is None
    assert storage.find_code_by_url("https://old.com") is None
    assert storage.find_code_by_url("https://new.com") == "new222"


@pytest.mark.parametrize(
    "records,buckets,reverse",
    [
        # bucket without a record
        ({}, {"x": AnalyticsBucket()}, {}),
        # record without a bucket
        ({"x": _record("x", "https://x.com")}, {}, {"https://x.com": "x"}),
        # reverse entry pointing at the wrong URL
        ({"x": _record("x", "https://x.com")}, {"x": AnalyticsBucket()}, {"https://y.com": "x"}),
        # missing reverse entry
        ({"x": _record("x", "https://x.com")}, {"x": AnalyticsBucket()}, {}),
        # key disagrees with record's own code
        ({"x": _record("y", "https://x.com")}, {"x": AnalyticsBucket()}, {"https://x.com": "x"}),
    ],
)
def test_load_rejects_inconsistent_maps(records, buckets, reverse):
    storage = Storage()
    storage.insert(_record("keep01", "https://keep.com"), AnalyticsBucket())
    with pytest.raises(ValueError):
        storage.load(records, buckets, reverse)
    # original index untouched
    assert storage.find_code_by_url("https://keep.com") == "keep01"
