"""Tests for therapybilling.services.income."""

import logging
from decimal import Decimal

from therapybilling.domain.aggregation import MonthlyBucket, aggregate, empty_buckets
from therapybilling.errors import SourceError
from therapybilling.io.cache import AggregateCache, MemoryStore
from therapybilling.services.income import IncomeTracker


class FakeSource:
    """Record source returning canned records or failing."""

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.tracker = None
        self.loading_seen = None

    def fetch(self):
        if self.tracker is not None:
            self.loading_seen = self.tracker.is_loading
        if self.error is not None:
            raise self.error
        return self.records

    def update(self, record):
        raise AssertionError("not expected")


class ReadOnlyStore(MemoryStore):
    """Store on a file system that refuses writes."""

    def set(self, key, value):
        raise PermissionError(13, "Permission denied", "cache.json")


def _cached_buckets():
    buckets = empty_buckets()
    buckets[0] = MonthlyBucket(month="Jan", income=Decimal(999), clients=1)
    return buckets


class TestIncomeTracker:
    """Test suite for the `IncomeTracker` class."""

    def test_initial_state(self):
        tracker = IncomeTracker(FakeSource(), AggregateCache(MemoryStore()))

        assert tracker.income_data == empty_buckets()
        assert not tracker.is_loading

    def test_refresh(self, records):
        """A successful refresh replaces the aggregate and the cache."""
        cache = AggregateCache(MemoryStore())
        tracker = IncomeTracker(FakeSource(records), cache)

        assert tracker.refresh()

        assert tracker.income_data == aggregate(records)
        assert cache.load() == aggregate(records)
        assert not tracker.is_loading

    def test_loading_flag_during_fetch(self, records):
        source = FakeSource(records)
        tracker = IncomeTracker(source, AggregateCache(MemoryStore()))
        source.tracker = tracker

        tracker.refresh()

        assert source.loading_seen is True
        assert tracker.is_loading is False

    def test_start_uses_cache_when_refresh_fails(self, caplog):
        """A failed refresh keeps showing the cached aggregate."""
        cache = AggregateCache(MemoryStore())
        cache.save(_cached_buckets())
        tracker = IncomeTracker(FakeSource(error=SourceError("offline")), cache)

        with caplog.at_level(logging.ERROR, logger="therapybilling.services.income"):
            assert tracker.start() is False

        assert tracker.income_data == _cached_buckets()
        assert cache.load() == _cached_buckets()
        assert not tracker.is_loading
        assert "Income refresh failed" in caplog.text

    def test_failed_refresh_keeps_fresh_data(self, records):
        source = FakeSource(records)
        tracker = IncomeTracker(source, AggregateCache(MemoryStore()))
        tracker.refresh()

        source.error = SourceError("offline")

        assert tracker.refresh() is False
        assert tracker.income_data == aggregate(records)

    def test_start_replaces_cache(self, records):
        cache = AggregateCache(MemoryStore())
        cache.save(_cached_buckets())
        tracker = IncomeTracker(FakeSource(records), cache)

        assert tracker.start() is True

        assert tracker.income_data == aggregate(records)
        assert cache.load() == aggregate(records)

    def test_start_without_refresh(self):
        cache = AggregateCache(MemoryStore())
        tracker = IncomeTracker(FakeSource(error=SourceError("unused")), cache)

        assert tracker.start(refresh=False) is False

        cache.save(_cached_buckets())
        assert tracker.start(refresh=False) is True
        assert tracker.income_data == _cached_buckets()

    def test_unwritable_cache_does_not_fail_refresh(self, records, caplog):
        """The fresh aggregate is kept when the cache cannot be written."""
        tracker = IncomeTracker(FakeSource(records), AggregateCache(ReadOnlyStore()))

        with caplog.at_level(logging.WARNING, logger="therapybilling.services.income"):
            assert tracker.refresh() is True

        assert tracker.income_data == aggregate(records)
        assert not tracker.is_loading
        assert "Could not cache the income aggregate" in caplog.text

    def test_huge_payment_does_not_fail_refresh(self, records):
        records.append(
            {"id": 5, "status": "selesai", "completedDate": "2025-03-30", "payment": "1e30"}
        )
        tracker = IncomeTracker(FakeSource(records), AggregateCache(MemoryStore()))

        assert tracker.refresh() is True
        assert tracker.income_data[2].clients == 3

    def test_year(self, records):
        tracker = IncomeTracker(FakeSource(records), AggregateCache(MemoryStore()), year=2024)

        tracker.refresh()

        assert tracker.income_data == empty_buckets()

    def test_reset(self, records):
        cache = AggregateCache(MemoryStore())
        tracker = IncomeTracker(FakeSource(records), cache)
        tracker.refresh()

        tracker.reset()

        assert tracker.income_data == empty_buckets()
        assert cache.load() == empty_buckets()
