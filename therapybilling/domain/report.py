"""Income report content built from the monthly aggregate."""

from __future__ import annotations

from collections.abc import Sequence
import datetime
from typing import Any

from ..config.model import Config
from .aggregation import MonthlyBucket, summarize_income
from .scale import compute_chart_scale


def build_income_report(
    buckets: Sequence[MonthlyBucket],
    config: Config,
    year: int,
    generated_at: datetime.datetime | None = None,
) -> dict[str, Any]:
    """Build an income report dictionary."""
    if generated_at is None:
        generated_at = datetime.datetime.now()

    # The current month only means something for the running year.
    month = generated_at.month if generated_at.year == year else 12
    summary = summarize_income(buckets, month=month)

    ticks = compute_chart_scale(
        max(bucket.income for bucket in buckets),
        intervals=config.chart.intervals,
        default_max=config.chart.default_max,
    )

    return {
        "title": f"Income Report {year}",
        "year": year,
        "generated": f"Generated: {generated_at.strftime(config.receipt.date_format)}",
        "key_figures": [
            (
                f"Income {summary['current_month']}",
                summary["current_month_income"],
                f"({summary['current_month_clients']} clients)",
            ),
            (
                "Total Income",
                summary["total_income"],
                f"({summary['total_clients']} clients)",
            ),
            (
                "Average per Month",
                summary["average_per_active_month"],
                "(months with clients)",
            ),
        ],
        "monthly": summary["monthly"],
        "total_income": summary["total_income"],
        "total_clients": summary["total_clients"],
        "average_per_client": summary["average_per_client"],
        "ticks": ticks,
    }
