"""Therapy line items and receipt totals."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from decimal import Decimal
from typing import Any

from ..errors import BillingValidationError
from .records import ClientRecord, TherapyLineItem, coerce_payment

logger = logging.getLogger(__name__)

DEFAULT_THERAPY_TYPE = "General Health Therapy"


def compute_line_items(entries: Iterable[Mapping[str, Any]]) -> list[TherapyLineItem]:
    """Create line items from ``{type, quantity, price}`` entries.

    Any ``total`` on an entry is ignored; the line total is always derived
    from quantity and price.
    """
    return [
        TherapyLineItem(
            type=entry["type"],
            quantity=entry["quantity"],
            price_per_session=entry["price"],
        )
        for entry in entries
    ]


def total(items: Iterable[TherapyLineItem]) -> Decimal:
    """Sum of all line totals; zero for no items."""
    return sum((item.total for item in items), Decimal(0))


def _entry_problem(entry: Mapping[str, Any]) -> str | None:
    """Describe why an entry cannot be billed, or None if it can."""
    therapy_type = entry.get("type")
    if not isinstance(therapy_type, str) or not therapy_type.strip():
        return "blank therapy type"

    quantity = entry.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        return "quantity must be a positive whole number"

    price = coerce_payment(entry.get("price"))
    if price is None:
        return "price must be a non-negative number"

    return None


def validate_entries(
    entries: Sequence[Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    """Keep the billable entries; at least one is required.

    Entries with a blank type, a non-positive quantity or a negative price
    are dropped. Raises BillingValidationError when nothing is left.
    """
    valid: list[Mapping[str, Any]] = []
    rejected: list[Mapping[str, Any]] = []

    for index, entry in enumerate(entries):
        problem = _entry_problem(entry)
        if problem:
            logger.warning(f"Dropping therapy entry {index + 1}: {problem}.")
            rejected.append(entry)
        else:
            valid.append(entry)

    if not valid:
        logger.error("No valid therapy entry to bill.")
        raise BillingValidationError(
            "At least one therapy with type, quantity and price is required.",
            rejected,
        )

    return valid


def normalize_line_items(
    record: ClientRecord, default_type: str = DEFAULT_THERAPY_TYPE
) -> list[TherapyLineItem]:
    """Return a record's line items in canonical form.

    Records written before line items existed carry a single therapy type,
    a quantity and the payment; they become exactly one line item whose
    price per session is the payment spread over the sessions.
    """
    if record.therapy_items:
        return compute_line_items(
            {
                "type": item.type,
                "quantity": item.quantity,
                "price": item.price_per_session,
            }
            for item in record.therapy_items
        )

    if record.therapy_type is None and record.payment is None:
        return []

    logger.debug(f"Using single-therapy fields of client {record.id}.")
    quantity = record.quantity if record.quantity and record.quantity > 0 else 1
    payment = coerce_payment(record.payment) or Decimal(0)

    return [
        TherapyLineItem(
            type=record.therapy_type or default_type,
            quantity=quantity,
            price_per_session=payment / quantity,
        )
    ]
