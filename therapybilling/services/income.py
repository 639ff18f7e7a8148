"""Income state: cached aggregate first, fresh aggregate after a refresh."""

from __future__ import annotations

import logging

from ..domain.aggregation import MonthlyBucket, aggregate, empty_buckets
from ..errors import SourceError
from ..io.cache import AggregateCache
from ..io.source import ClientRecordSource

logger = logging.getLogger(__name__)


class IncomeTracker:
    """Keeps the monthly income aggregate shown to the admin.

    The canonical aggregate is whatever the latest successful refresh
    produced; the cache only fills the gap until then.
    """

    def __init__(
        self,
        source: ClientRecordSource,
        cache: AggregateCache,
        year: int | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.year = year
        self.income_data: list[MonthlyBucket] = empty_buckets()
        self.is_loading = False

    def start(self, refresh: bool = True) -> bool:
        """Show the cached aggregate, then optionally refresh it.

        Returns the refresh result, or whether a cached value was found when
        no refresh is requested.
        """
        cached = self.cache.load()
        if cached is not None:
            logger.info("Using cached income aggregate until refreshed.")
            self.income_data = cached

        if not refresh:
            return cached is not None
        return self.refresh()

    def refresh(self) -> bool:
        """Recompute the aggregate from the source.

        On a fetch failure the current aggregate and the cache stay as they were.
        A cache that cannot be written does not fail the refresh.
        """
        self.is_loading = True
        try:
            try:
                records = self.source.fetch()
            except SourceError as e:
                logger.error(f"Income refresh failed, keeping previous data: {e}")
                return False

            buckets = aggregate(records, year=self.year)
            self.income_data = buckets
            try:
                self.cache.save(buckets)
            except OSError as e:
                logger.warning(f"Could not cache the income aggregate: {e}")
        finally:
            self.is_loading = False

        logger.info(f"Income aggregate refreshed from {len(records)} client records.")
        return True

    def reset(self) -> None:
        """Zero the aggregate and the cache."""
        self.income_data = empty_buckets()
        self.cache.save(self.income_data)
