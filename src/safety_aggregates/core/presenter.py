from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any, Literal

from safety_aggregates.core.grouper import coerce_value

DisplayMode = Literal["absolute", "percentage"]

PERCENTAGE_DECIMALS = 2
DEFAULT_BAR_COLOR = "#5470C6"


def format_value(value: Any, mode: DisplayMode, grand_total: Any) -> float:
    """Value as shown on the chart: unchanged, or its percentage of ``grand_total``.

    Never returns NaN or infinity; a zero grand total yields 0 in percentage mode.
    """
    number = coerce_value(value)
    if mode == "absolute":
        return number
    if mode == "percentage":
        denominator = coerce_value(grand_total)
        if denominator == 0:
            return 0.0
        return round(number / denominator * 100.0, PERCENTAGE_DECIMALS)
    raise ValueError(f"Unsupported display mode: {mode}")


def format_series(values: Iterable[Any], mode: DisplayMode, grand_total: Any) -> list[float]:
    return [format_value(value, mode, grand_total) for value in values]


def format_label(value: Any, mode: DisplayMode) -> str:
    number = coerce_value(value)
    if mode == "percentage":
        return f"{number:.{PERCENTAGE_DECIMALS}f}%"
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.{PERCENTAGE_DECIMALS}f}"


def gradient_color(value: Any, minimum: Any, maximum: Any) -> str:
    """Green-to-red ``rgb(r,g,b)`` colour for ``value`` within ``[minimum, maximum]``."""
    low = coerce_value(minimum)
    span = (coerce_value(maximum) - low) or 1.0
    ratio = min(max((coerce_value(value) - low) / span, 0.0), 1.0)
    red = math.floor(255 * ratio + 0.5)
    green = math.floor(200 * (1 - ratio) + 0.5)
    return f"rgb({red},{green},100)"


def gradient_colors(values: Iterable[Any]) -> list[str]:
    numbers = [coerce_value(value) for value in values]
    if not numbers:
        return []
    low, high = min(numbers), max(numbers)
    return [gradient_color(number, low, high) for number in numbers]


def rgb_to_hex(color: str) -> str:
    """Convert ``rgb(r,g,b)`` to ``#rrggbb``; hex strings pass through."""
    if color.startswith("#"):
        return color
    inner = color[color.index("(") + 1 : color.rindex(")")]
    red, green, blue = (int(part.strip()) for part in inner.split(","))
    return f"#{red:02x}{green:02x}{blue:02x}"
