"""Axis scale for the monthly income chart."""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

DEFAULT_INTERVALS = 5
DEFAULT_MAX = Decimal(5_000_000)


def _nice_step(max_value: Decimal) -> Decimal:
    """Pick a round step from the order of magnitude of ``max_value``."""
    exponent = int(max_value.log10().to_integral_value(rounding=ROUND_FLOOR))
    magnitude = Decimal(10) ** exponent
    normalized = max_value / magnitude

    if normalized <= 1:
        return magnitude / 5
    if normalized <= 2:
        return magnitude / 2
    if normalized <= 5:
        return magnitude
    return magnitude * 2


def compute_chart_scale(
    max_value: Decimal | int | float,
    intervals: int = DEFAULT_INTERVALS,
    default_max: Decimal | int = DEFAULT_MAX,
) -> list[Decimal]:
    """Return ``intervals + 1`` evenly spaced ticks from 0 to a round ceiling.

    The ceiling is ``max_value`` rounded up to a multiple of a step chosen
    from its order of magnitude, so labels stay round at any scale. A zero
    maximum yields the ticks for ``default_max``.
    """
    if intervals < 1:
        raise ValueError(f"intervals must be at least 1, got {intervals}.")

    value = Decimal(str(max_value))
    if value < 0:
        raise ValueError(f"Chart maximum cannot be negative: {max_value}.")

    if value == 0:
        chart_max = Decimal(default_max)
    else:
        step = _nice_step(value)
        chart_max = (value / step).to_integral_value(rounding=ROUND_CEILING) * step

    return [chart_max * i / intervals for i in range(intervals + 1)]


def format_axis_label(value: Decimal | int | float) -> str:
    """Compact axis label: 250K, 1.5M, 2B."""
    value = Decimal(str(value))
    for unit, suffix in (
        (Decimal(1_000_000_000), "B"),
        (Decimal(1_000_000), "M"),
    ):
        if value >= unit:
            places = 0 if value % unit == 0 else 1
            return f"{value / unit:.{places}f}{suffix}"
    if value >= 1000:
        return f"{value / 1000:.0f}K"
    return f"{value.normalize():f}"


def bar_height_ratio(value: Decimal | int | float, chart_max: Decimal) -> Decimal:
    """Share of the axis covered by a bar of ``value``, between 0 and 1."""
    if chart_max <= 0:
        return Decimal(0)
    ratio = Decimal(str(value)) / chart_max
    return max(Decimal(0), min(ratio, Decimal(1)))
