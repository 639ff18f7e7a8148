"""Utility functions for therapybilling."""

from decimal import ROUND_HALF_UP, Decimal
from functools import cache
import logging
import qrcode
import qrcode.image.base

logger = logging.getLogger(__name__)

# Currencies written with a dot for thousands and a comma for decimals.
_DOT_GROUPED = {"IDR"}


def format_currency(
    value: Decimal | None, currency: str = "IDR", decimals: int | None = None
) -> str:
    """Format a Decimal value as currency."""
    if value is None:
        return format_currency(Decimal(), currency, decimals)
    if not isinstance(value, Decimal):
        raise TypeError("Value must be a Decimal instance.")

    if decimals is not None:
        value = value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    elif value.as_tuple().exponent > 0:
        # 5E+5 would otherwise print in scientific notation
        value = value.quantize(Decimal(1))

    amount = f"{value:,}"
    if currency in _DOT_GROUPED:
        amount = amount.translate(str.maketrans(",.", ".,"))

    currency_symbol = {
        "IDR": "Rp ",
        "INR": "Rs. ",
        "USD": "$",
    }.get(currency)

    if currency_symbol:
        return f"{currency_symbol}{amount}"
    else:
        return f"{amount} {currency}"


@cache
def get_qrcode_image(data: str) -> qrcode.image.base.BaseImage:
    """Generate a QR code image for the given data."""
    qr = qrcode.QRCode()
    qr.add_data(data)
    img = qr.make_image()
    return img
