"""Receipt numbering, issuance and document content."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import datetime
import logging
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field

from ..config.model import Config
from ..errors import ReceiptError
from .billing import (
    DEFAULT_THERAPY_TYPE,
    compute_line_items,
    normalize_line_items,
    total,
    validate_entries,
)
from .records import ClientRecord, ClientStatus, TherapyLineItem

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "TR"
THERAPIST_PLACEHOLDER = "Professional Therapist Team"

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_MILLISECOND = datetime.timedelta(milliseconds=1)


def generate_receipt_number(
    now: datetime.datetime | None = None, prefix: str = DEFAULT_PREFIX
) -> str:
    """Build a receipt number such as ``TR-250310-512345``.

    The middle part is the UTC date, the last part the final six digits of
    the millisecond timestamp. Naive datetimes are taken as UTC.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)

    now = now.astimezone(datetime.timezone.utc)
    milliseconds = (now - _EPOCH) // _MILLISECOND
    return f"{prefix}-{now:%y%m%d}-{milliseconds % 1_000_000:06d}"


class Receipt(BaseModel):
    """The billed outcome of one completed engagement."""

    model_config = ConfigDict(frozen=True)

    number: str
    client_id: int | str
    client_name: str
    client_phone: str | None = None
    client_address: str | None = None
    client_complaint: str | None = None
    completed_date: datetime.date | None = None
    line_items: tuple[TherapyLineItem, ...]
    therapist_name: str
    notes: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        """Grand total of all line items."""
        return total(self.line_items)


class ReceiptIssuer:
    """Hands out receipt numbers and builds receipts.

    A record keeps the number it was first given: either the one stored on
    the record or the one this issuer generated for its client id, until
    ``reset`` is called for that client.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        therapist_placeholder: str = THERAPIST_PLACEHOLDER,
        default_therapy_type: str = DEFAULT_THERAPY_TYPE,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.prefix = prefix
        self.therapist_placeholder = therapist_placeholder
        self.default_therapy_type = default_therapy_type
        self._clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))
        self._issued: set[str] = set()
        self._by_client: dict[int | str, str] = {}

    @classmethod
    def from_config(cls, config: Config) -> ReceiptIssuer:
        return cls(
            prefix=config.receipt.prefix,
            therapist_placeholder=config.receipt.therapist_placeholder,
            default_therapy_type=config.receipt.default_therapy_type,
        )

    def next_number(self) -> str:
        """Generate a number not yet handed out by this issuer."""
        now = self._clock()
        number = generate_receipt_number(now, self.prefix)
        while number in self._issued:
            now += _MILLISECOND
            number = generate_receipt_number(now, self.prefix)
        self._issued.add(number)
        return number

    def number_for(self, record: ClientRecord) -> str:
        """Return the record's receipt number, generating it on first use."""
        if record.receipt_number:
            self._by_client.setdefault(record.id, record.receipt_number)
            return record.receipt_number
        if record.id not in self._by_client:
            self._by_client[record.id] = self.next_number()
            logger.info(
                f"Assigned receipt {self._by_client[record.id]} to client {record.id}."
            )
        return self._by_client[record.id]

    def reset(self, client_id: int | str) -> None:
        """Forget the number generated for a client."""
        self._by_client.pop(client_id, None)

    def issue(
        self,
        record: ClientRecord,
        line_items: Iterable[TherapyLineItem] | None = None,
        therapist_name: str | None = None,
        notes: str | None = None,
    ) -> Receipt:
        """Build the receipt of a completed engagement."""
        items = (
            tuple(line_items)
            if line_items is not None
            else tuple(normalize_line_items(record, self.default_therapy_type))
        )
        if not items:
            raise ReceiptError(f"Client {record.id} has nothing to bill.")

        therapist = (therapist_name or record.therapist_name or "").strip()

        return Receipt(
            number=self.number_for(record),
            client_id=record.id,
            client_name=record.name,
            client_phone=record.phone,
            client_address=record.address,
            client_complaint=record.complaint,
            completed_date=record.completed_date,
            line_items=items,
            therapist_name=therapist or self.therapist_placeholder,
            notes=notes if notes is not None else record.notes,
        )


def complete_engagement(
    record: ClientRecord,
    entries: Sequence[Mapping[str, Any]],
    completed_date: datetime.date,
    issuer: ReceiptIssuer,
    therapist_name: str | None = None,
    notes: str | None = None,
) -> tuple[ClientRecord, Receipt]:
    """Mark an engagement completed and issue its receipt.

    Raises BillingValidationError when no entry can be billed. Returns the
    updated record, carrying the payment and receipt number, and the receipt.
    """
    items = compute_line_items(validate_entries(entries))
    therapist = (therapist_name or "").strip() or issuer.therapist_placeholder

    completed = record.model_copy(
        update={
            "status": ClientStatus.COMPLETED,
            "completed_date": completed_date,
            "payment": total(items),
            "therapy_items": items,
            "therapist_name": therapist,
            "notes": notes or None,
        }
    )
    receipt = issuer.issue(completed, items, therapist, notes or None)
    logger.info(f"Client {record.id} completed with receipt {receipt.number}.")

    return completed.model_copy(update={"receipt_number": receipt.number}), receipt


def build_receipt_document(
    receipt: Receipt,
    config: Config,
    generated_at: datetime.datetime | None = None,
) -> dict[str, Any]:
    """Collect everything printed on a receipt."""
    if generated_at is None:
        generated_at = datetime.datetime.now()
    date_format = config.receipt.date_format
    clinic = config.clinic

    subtotal = receipt.total
    tax_rate = Decimal(0)
    tax = subtotal * tax_rate

    return {
        "number": receipt.number,
        "title": f"Therapy Receipt - {receipt.client_name}",
        "clinic": {
            "name": clinic.name,
            "tagline": clinic.tagline,
            "phone": clinic.phone,
            "email": clinic.email,
            "website": clinic.website,
        },
        "client": {
            "name": receipt.client_name,
            "phone": receipt.client_phone,
            "address": receipt.client_address,
            "complaint": receipt.client_complaint,
        },
        "date": (receipt.completed_date or generated_at.date()).strftime(date_format),
        "therapist": receipt.therapist_name,
        "items": [
            {
                "type": item.type,
                "quantity": item.quantity,
                "unit_price": item.price_per_session,
                "total": item.total,
            }
            for item in receipt.line_items
        ],
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax": tax,
        "total": subtotal + tax,
        "notes": receipt.notes,
        "signatures": (receipt.client_name, receipt.therapist_name),
        "generated": f"Generated: {generated_at.strftime(f'{date_format} %H:%M')}",
    }
