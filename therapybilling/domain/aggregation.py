"""Monthly income aggregation over client records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import datetime
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import polars as pl
from pydantic import BaseModel, ConfigDict, Field

from .records import (
    CENTS,
    ClientRecord,
    ClientStatus,
    coerce_date,
    coerce_payment,
    parse_status,
)

logger = logging.getLogger(__name__)

MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


class MonthlyBucket(BaseModel):
    """Income and client count of one calendar month."""

    model_config = ConfigDict(frozen=True)

    month: str
    income: Decimal = Field(default=Decimal(0), ge=0)
    clients: int = Field(default=0, ge=0)


def empty_buckets() -> list[MonthlyBucket]:
    """Twelve zeroed buckets, January first."""
    return [MonthlyBucket(month=label) for label in MONTH_LABELS]


def _paid_completion(
    record: Mapping[str, Any] | ClientRecord,
) -> tuple[datetime.date, Decimal] | None:
    """Return (completion date, payment) of a completed, paid record."""
    if isinstance(record, ClientRecord):
        status, completed, payment = (
            record.status,
            record.completed_date,
            coerce_payment(record.payment),
        )
    else:
        status = parse_status(record.get("status"))
        completed = coerce_date(record.get("completedDate"))
        payment = coerce_payment(record.get("payment"))

    if status is not ClientStatus.COMPLETED:
        return None
    if completed is None or payment is None:
        logger.debug("Skipping completed record without usable date or payment.")
        return None
    try:
        amount = payment.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.debug(f"Skipping completed record with out-of-range payment {payment}.")
        return None
    return completed, amount


def aggregate(
    records: Iterable[Mapping[str, Any] | ClientRecord], year: int | None = None
) -> list[MonthlyBucket]:
    """Bucket completed, paid records into twelve calendar months.

    Records that are not completed, or whose completion date or payment
    cannot be read, are skipped. When ``year`` is given only completions in
    that year count; otherwise every year falls into the same twelve months.
    """
    rows = [
        paid for paid in map(_paid_completion, records) if paid is not None
    ]

    df_paid = pl.DataFrame(
        rows,
        schema={"completed_date": pl.Date, "payment": pl.Decimal(None, 2)},
        orient="row",
    )
    if year is not None:
        df_paid = df_paid.filter(pl.col("completed_date").dt.year() == year)

    df_monthly = (
        df_paid.group_by(pl.col("completed_date").dt.month().alias("month"))
        .agg(
            pl.col("payment").sum().alias("income"),
            pl.len().alias("clients"),
        )
        .sort("month")
    )

    buckets = empty_buckets()
    for row in df_monthly.iter_rows(named=True):
        index = row["month"] - 1
        buckets[index] = MonthlyBucket(
            month=MONTH_LABELS[index],
            income=Decimal(row["income"]),
            clients=row["clients"],
        )

    logger.debug(f"Aggregated {df_paid.height} paid completions.")
    return buckets


def summarize_income(
    buckets: Sequence[MonthlyBucket], month: int | None = None
) -> dict[str, Any]:
    """Build the key figures shown above the income chart.

    ``month`` is the 1-based month treated as current; it defaults to today.
    """
    if month is None:
        month = datetime.date.today().month
    current = buckets[month - 1]

    total_income = sum((bucket.income for bucket in buckets), Decimal(0))
    total_clients = sum(bucket.clients for bucket in buckets)
    active_months = sum(1 for bucket in buckets if bucket.clients > 0)

    return {
        "current_month": current.month,
        "current_month_income": current.income,
        "current_month_clients": current.clients,
        "total_income": total_income,
        "total_clients": total_clients,
        "average_per_active_month": total_income / (active_months or 1),
        "average_per_client": (
            total_income / total_clients if total_clients else Decimal(0)
        ),
        "monthly": [
            {
                "month": bucket.month,
                "income": bucket.income,
                "clients": bucket.clients,
                "average": (
                    bucket.income / bucket.clients if bucket.clients else None
                ),
            }
            for bucket in buckets
        ],
    }
