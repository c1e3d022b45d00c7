from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from safety_aggregates.core.grouper import Bucket, coerce_value

SortMode = Literal["total", "key", "natural", "none"]
SelectionKind = Literal["all", "top_n", "threshold"]

DEFAULT_TOP_N = 10
DEFAULT_THRESHOLD_FRACTION = 0.5
LEGEND_DECIMALS = 1

_NUMBER_PATTERN = re.compile(r"(\d+)")


@dataclass(frozen=True)
class Selection:
    items: tuple[Bucket, ...]
    grand_total: float
    cumulative_total: float
    percentage_of_grand_total: float
    kind: SelectionKind = "all"

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def keys(self) -> list[str]:
        return [bucket.key for bucket in self.items]

    def legend(self) -> str:
        return (
            f"{self.item_count} items: "
            f"{self.percentage_of_grand_total:.{LEGEND_DECIMALS}f}% of total"
        )


def grand_total(buckets: Sequence[Bucket]) -> float:
    return math.fsum(bucket.total for bucket in buckets)


def share_of_total(part: float, whole: float, decimals: int = LEGEND_DECIMALS) -> float:
    """Percentage ``part / whole * 100`` rounded for display; 0 when ``whole`` is 0."""
    if whole == 0:
        return 0.0
    return round(part / whole * 100.0, decimals)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char)).casefold()


def _natural_key(text: str) -> tuple[tuple[int, int | str], ...]:
    parts = _NUMBER_PATTERN.split(_fold(text))
    return tuple(
        (0, int(part)) if part.isdigit() else (1, part.strip())
        for part in parts
        if part.strip()
    )


def sort_by_total(buckets: Sequence[Bucket]) -> list[Bucket]:
    """Descending by total; ``sorted`` is stable so ties keep input order."""
    return sorted(buckets, key=lambda bucket: bucket.total, reverse=True)


def sort_buckets(buckets: Sequence[Bucket], mode: SortMode = "total") -> list[Bucket]:
    if mode == "total":
        return sort_by_total(buckets)
    if mode == "key":
        return sorted(buckets, key=lambda bucket: (_fold(bucket.key), bucket.key))
    if mode == "natural":
        return sorted(buckets, key=lambda bucket: _natural_key(bucket.key))
    if mode == "none":
        return list(buckets)
    raise ValueError(f"Unsupported sort mode: {mode}")


def select_all(buckets: Sequence[Bucket]) -> Selection:
    total = grand_total(buckets)
    return Selection(
        items=tuple(buckets),
        grand_total=total,
        cumulative_total=total,
        percentage_of_grand_total=share_of_total(total, total),
        kind="all",
    )


def top_n(buckets: Sequence[Bucket], n: int = DEFAULT_TOP_N) -> Selection:
    """The ``n`` largest buckets and their share of the full set's grand total."""
    total = grand_total(buckets)
    # NaN, infinite or non-numeric n selects nothing.
    count = max(int(coerce_value(n)), 0)
    selected = tuple(sort_by_total(buckets)[:count])
    cumulative = grand_total(selected)
    return Selection(
        items=selected,
        grand_total=total,
        cumulative_total=cumulative,
        percentage_of_grand_total=share_of_total(cumulative, total),
        kind="top_n",
    )


def top_until_fraction(
    buckets: Sequence[Bucket],
    fraction: float = DEFAULT_THRESHOLD_FRACTION,
) -> Selection:
    """Smallest prefix (largest first) whose running total reaches ``fraction`` of the total.

    The bucket that crosses the threshold is included. With a zero grand total
    the full set is returned with a 0 percentage.
    """
    total = grand_total(buckets)
    ordered = sort_by_total(buckets)
    if total == 0:
        return Selection(
            items=tuple(ordered),
            grand_total=total,
            cumulative_total=0.0,
            percentage_of_grand_total=0.0,
            kind="threshold",
        )

    target = min(max(coerce_value(fraction), 0.0), 1.0)
    selected: list[Bucket] = []
    running = 0.0
    for bucket in ordered:
        selected.append(bucket)
        running = grand_total(selected)
        if running / total >= target:
            break

    return Selection(
        items=tuple(selected),
        grand_total=total,
        cumulative_total=running,
        percentage_of_grand_total=share_of_total(running, total),
        kind="threshold",
    )
