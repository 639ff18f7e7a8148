"""Client records as delivered by the clinic backend.

The backend speaks camelCase and is loose about types: payments arrive as
decimal strings (``"100000.00"``), dates as ISO dates or datetimes, and the
status uses the clinic's own wording. The helpers here coerce those values
without raising so the aggregation can skip what it cannot read.
"""

from __future__ import annotations

import datetime
import logging
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class ClientStatus(StrEnum):
    """Progress of a client's engagement."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


_STATUS_ALIASES = {
    "in-progress": ClientStatus.IN_PROGRESS,
    "on progress": ClientStatus.IN_PROGRESS,
    "completed": ClientStatus.COMPLETED,
    "selesai": ClientStatus.COMPLETED,
}

_WIRE_STATUS = {
    ClientStatus.IN_PROGRESS: "on progress",
    ClientStatus.COMPLETED: "selesai",
}


def parse_status(value: Any) -> ClientStatus | None:
    """Map a wire status to a ClientStatus, or None if unknown."""
    if isinstance(value, ClientStatus):
        return value
    if not isinstance(value, str):
        return None
    return _STATUS_ALIASES.get(value.strip().lower())


def coerce_payment(value: Any) -> Decimal | None:
    """Return a payment as a non-negative finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def coerce_date(value: Any) -> datetime.date | None:
    """Return the calendar date of a date, datetime or ISO string, or None."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return datetime.date.fromisoformat(value[:10])
    except ValueError:
        return None


class TherapyLineItem(BaseModel):
    """One priced therapy service on a receipt."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, str_strip_whitespace=True
    )

    type: str = Field(min_length=1)
    """Name of the therapy."""

    quantity: int = Field(ge=1)
    """Number of sessions."""

    price_per_session: Decimal = Field(ge=0, alias="pricePerSession")
    """Price of a single session."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        """Line total, always derived from quantity and price."""
        return (self.quantity * self.price_per_session).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )


class ClientRecord(BaseModel):
    """A client of the clinic and the state of their engagement."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int | str
    name: str = ""
    phone: str | None = None
    address: str | None = None
    complaint: str | None = None
    status: ClientStatus = ClientStatus.IN_PROGRESS
    completed_date: datetime.date | None = Field(default=None, alias="completedDate")
    payment: Decimal | None = None
    therapy_items: list[TherapyLineItem] = Field(
        default_factory=list, alias="therapyItems"
    )
    therapist_name: str | None = Field(default=None, alias="therapistName")
    notes: str | None = None
    receipt_number: str | None = Field(default=None, alias="receiptNumber")

    # Single-therapy fields written before line items existed.
    therapy_type: str | None = Field(default=None, alias="therapyType")
    quantity: int | None = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> ClientStatus:
        """Accept the backend's status wording; missing means in progress."""
        if v is None:
            return ClientStatus.IN_PROGRESS
        status = parse_status(v)
        if status is None:
            raise ValueError(f"Unknown client status: {v!r}")
        return status

    @field_validator("completed_date", mode="before")
    @classmethod
    def validate_completed_date(cls, v: Any) -> Any:
        if v in (None, ""):
            return None
        return coerce_date(v) or v

    @field_validator("therapy_items", mode="before")
    @classmethod
    def validate_therapy_items(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator(
        "phone",
        "address",
        "complaint",
        "therapist_name",
        "notes",
        "receipt_number",
        "therapy_type",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_completed(self) -> bool:
        return self.status is ClientStatus.COMPLETED

    def to_wire(self) -> dict[str, Any]:
        """Serialize the record the way the clinic backend expects it."""
        data = self.model_dump(by_alias=True, mode="json")
        data["status"] = _WIRE_STATUS[self.status]
        return data
