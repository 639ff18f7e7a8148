"""Exceptions raised by therapybilling."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class TherapyBillingError(Exception):
    """Base class for all therapybilling errors."""


class SourceError(TherapyBillingError):
    """The client record source could not be read or written."""


class BillingValidationError(TherapyBillingError, ValueError):
    """Billing input that the user has to correct before completing."""

    def __init__(
        self, message: str, rejected: Sequence[Mapping[str, Any]] = ()
    ) -> None:
        super().__init__(message)
        self.rejected = list(rejected)


class ReceiptError(TherapyBillingError):
    """A receipt could not be issued for a client record."""
