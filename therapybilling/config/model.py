"""Configuration for the therapybilling application."""

import datetime
from decimal import Decimal
from pathlib import Path
from typing import Literal
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

_HEX_COLOR = r"^#([A-Fa-f0-9]{8}|[A-Fa-f0-9]{4}|[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class _ClinicConfig(BaseModel):
    """Configuration settings for the clinic shown on documents."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=50)
    tagline: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    email: str | None = Field(default=None, max_length=100)
    website: str | None = Field(default=None, max_length=100)


class _SourceConfig(BaseModel):
    """Where client records are read from."""

    model_config = ConfigDict(frozen=True)

    path: Path | None = None
    """JSON file holding a list of client records."""

    url: HttpUrl | None = None
    """Base URL of the clinic backend serving ``/api/clients``."""

    timeout: float = Field(default=10.0, gt=0)
    """Seconds to wait for the backend before giving up."""

    write_back: bool = Field(default=True, alias="write-back")
    """Whether newly issued receipt numbers are stored on the source."""

    @model_validator(mode="after")
    def validate_location(self) -> "_SourceConfig":
        """Exactly one of path and url must be set."""
        if (self.path is None) == (self.url is None):
            raise ValueError("Set exactly one of 'path' or 'url' for the source.")
        return self


class _CacheConfig(BaseModel):
    """Configuration settings for the income aggregate cache."""

    model_config = ConfigDict(frozen=True)

    path: Path = Path(".therapybilling-cache.json")
    """File holding cached values."""

    key: str = Field(default="incomeData", min_length=1)
    """Key of the cached monthly aggregate."""


class _ReceiptConfig(BaseModel):
    """Configuration settings for receipts."""

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(default="TR", min_length=1, max_length=10)
    """Prefix of generated receipt numbers."""

    decimals: int = Field(default=0, ge=0, le=6)
    """Number of decimal places for receipt amounts."""

    date_format: str = Field(default="%d %B %Y", alias="date-format")
    """Format for displaying dates in the receipt."""

    style_color: str = Field(default="#3A5645", alias="style-color", pattern=_HEX_COLOR)
    """Color used for styling the receipt, in hex format."""

    therapist_placeholder: str = Field(
        default="Professional Therapist Team", alias="therapist-placeholder"
    )
    """Therapist name printed when none was recorded."""

    default_therapy_type: str = Field(
        default="General Health Therapy", alias="default-therapy-type", min_length=1
    )
    """Therapy name used for records with a payment but no therapy type."""

    qr_code: bool = Field(default=False, alias="qr-code")
    """Whether to print a QR code carrying the receipt number."""

    footer_text: str | None = Field(default=None, alias="footer-text")
    """Text to display in the footer, if any."""


class _ChartConfig(BaseModel):
    """Configuration settings for the income chart."""

    model_config = ConfigDict(frozen=True)

    intervals: int = Field(default=5, ge=1, le=20)
    """Number of intervals on the income axis."""

    default_max: Decimal = Field(default=Decimal(5_000_000), gt=0, alias="default-max")
    """Axis maximum used while there is no income at all."""

    style_color: str = Field(default="#3A5645", alias="style-color", pattern=_HEX_COLOR)
    """Color of the income bars."""


class _PaymentConfig(BaseModel):
    """Configuration settings for amounts."""

    model_config = ConfigDict(frozen=True)

    currency: Literal["IDR", "INR", "USD"] | str = Field(default="IDR", min_length=1)
    """Currency of all amounts, default is IDR."""


class _OutputConfig(BaseModel):
    """Configuration settings for one output."""

    model_config = ConfigDict(frozen=True)

    path: str
    """Path to save the output files."""

    type: Literal["income", "receipts", "combined"]

    year: int | None = Field(default=None, ge=2000, le=9999)
    """Year of the income report, defaults to the current year."""

    @property
    def report_year(self) -> int:
        return self.year or datetime.date.today().year


class Config(BaseModel):
    """Configuration settings for the therapybilling application."""

    model_config = ConfigDict(frozen=True)

    clinic: _ClinicConfig
    """Configuration for the clinic."""

    source: _SourceConfig
    """Configuration for the client record source."""

    cache: _CacheConfig = _CacheConfig()
    """Configuration for the aggregate cache."""

    receipt: _ReceiptConfig = _ReceiptConfig()
    """Configuration for receipts."""

    chart: _ChartConfig = _ChartConfig()
    """Configuration for the income chart."""

    payment: _PaymentConfig = _PaymentConfig()
    """Configuration for amounts."""

    output: dict[str, _OutputConfig]
    """Configuration for output formats."""

    @field_validator("output", mode="after")
    @classmethod
    def validate_output(cls, v: dict[str, _OutputConfig]) -> dict[str, _OutputConfig]:
        """Ensure that the output configuration contains at least one entry."""
        if not v:
            raise ValueError("At least one output configuration must be provided.")
        return v
