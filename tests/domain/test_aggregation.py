"""Tests for therapybilling.domain.aggregation."""

import datetime as dt
import logging
from decimal import Decimal

from therapybilling.domain.aggregation import (
    MONTH_LABELS,
    MonthlyBucket,
    aggregate,
    empty_buckets,
    summarize_income,
)
from therapybilling.domain.records import ClientRecord


def _completed(date, payment, **extra):
    """A completed record in the backend's wire shape."""
    return {"status": "selesai", "completedDate": date, "payment": payment, **extra}


class TestAggregate:
    """Test suite for the `aggregate` function."""

    def test_march_scenario(self, records):
        """Three completed March records and one in progress."""
        buckets = aggregate(records)

        assert len(buckets) == 12
        assert buckets[2] == MonthlyBucket(
            month="Mar", income=Decimal(450000), clients=3
        )
        for index, bucket in enumerate(buckets):
            if index != 2:
                assert bucket.income == 0
                assert bucket.clients == 0

    def test_empty_input_gives_twelve_zero_buckets(self):
        """No records still produces all months, in calendar order."""
        buckets = aggregate([])
        assert [b.month for b in buckets] == list(MONTH_LABELS)
        assert buckets == empty_buckets()

    def test_client_count_matches_valid_completions(self):
        """Every completed and paid record counts once, nothing else counts."""
        records = [
            _completed("2025-01-05", 1000),
            _completed("2025-01-06", "2500.50"),
            _completed("2025-07-01T08:00:00Z", 0),
            _completed("2025-12-31", 99),
            _completed("2025-02-01", None),  # unpaid
            _completed(None, 1000),  # no date
            {"status": "on progress", "completedDate": "2025-02-01", "payment": 5},
            {"status": "in-progress", "payment": 5},
        ]

        buckets = aggregate(records)

        assert sum(b.clients for b in buckets) == 4
        assert buckets[0].income == Decimal("3500.50")
        assert buckets[0].clients == 2
        assert buckets[6].clients == 1
        assert buckets[6].income == 0
        assert buckets[11].income == 99

    def test_malformed_records_are_skipped(self, caplog):
        """Bad payments and dates are skipped without raising."""
        records = [
            _completed("2025-04-01", "abc"),
            _completed("2025-04-01", -500),
            _completed("2025-04-01", "NaN"),
            _completed("2025-04-01", True),
            _completed("not-a-date", 1000),
            _completed("2025-13-45", 1000),
            {"status": "unknown", "completedDate": "2025-04-01", "payment": 10},
            {"status": None},
            {},
            _completed("2025-04-02", "750"),
        ]

        with caplog.at_level(logging.DEBUG, logger="therapybilling.domain.aggregation"):
            buckets = aggregate(records)

        assert buckets[3] == MonthlyBucket(month="Apr", income=Decimal(750), clients=1)
        assert sum(b.clients for b in buckets) == 1
        assert any("Skipping completed record" in r.getMessage() for r in caplog.records)

    def test_out_of_range_payment_is_skipped(self, caplog):
        """A payment too large to keep in cents skips only its own record."""
        records = [
            _completed("2025-03-01", "100000"),
            _completed("2025-03-02", "1e30"),
        ]

        with caplog.at_level(logging.DEBUG, logger="therapybilling.domain.aggregation"):
            buckets = aggregate(records)
            parsed = aggregate([ClientRecord.model_validate({"id": 1, **r}) for r in records])

        assert buckets[2] == MonthlyBucket(month="Mar", income=Decimal(100000), clients=1)
        assert parsed == buckets
        assert any("out-of-range payment" in r.getMessage() for r in caplog.records)

    def test_aggregate_is_idempotent(self, records):
        """The same input always gives equal buckets."""
        assert aggregate(records) == aggregate(records)

    def test_years_merge_without_filter(self):
        """Without a year the buckets are keyed by month only."""
        records = [_completed("2024-03-01", 100), _completed("2025-03-01", 200)]

        buckets = aggregate(records)

        assert buckets[2].income == 300
        assert buckets[2].clients == 2

    def test_year_filter(self):
        """With a year only completions in that year count."""
        records = [_completed("2024-03-01", 100), _completed("2025-03-01", 200)]

        buckets = aggregate(records, year=2025)

        assert buckets[2].income == 200
        assert buckets[2].clients == 1
        assert aggregate(records, year=2023) == empty_buckets()

    def test_accepts_client_records(self, records):
        """Parsed ClientRecord objects aggregate like raw mappings."""
        parsed = [ClientRecord.model_validate(r) for r in records]
        assert aggregate(parsed) == aggregate(records)

    def test_date_objects(self):
        """Date and datetime values are accepted as completion dates."""
        records = [
            _completed(dt.date(2025, 5, 1), 10),
            _completed(dt.datetime(2025, 5, 2, 13, 30), 20),
        ]
        assert aggregate(records)[4].income == 30


class TestSummarizeIncome:
    """Test suite for the `summarize_income` function."""

    def test_key_figures(self):
        """Current month, totals and averages."""
        buckets = empty_buckets()
        buckets[0] = MonthlyBucket(month="Jan", income=Decimal(300), clients=3)
        buckets[2] = MonthlyBucket(month="Mar", income=Decimal(100), clients=1)

        summary = summarize_income(buckets, month=3)

        assert summary["current_month"] == "Mar"
        assert summary["current_month_income"] == 100
        assert summary["current_month_clients"] == 1
        assert summary["total_income"] == 400
        assert summary["total_clients"] == 4
        assert summary["average_per_active_month"] == 200
        assert summary["average_per_client"] == 100
        assert summary["monthly"][0]["average"] == 100
        assert summary["monthly"][1]["average"] is None

    def test_no_income(self):
        """Empty buckets do not divide by zero."""
        summary = summarize_income(empty_buckets(), month=1)

        assert summary["total_income"] == 0
        assert summary["average_per_active_month"] == 0
        assert summary["average_per_client"] == 0
