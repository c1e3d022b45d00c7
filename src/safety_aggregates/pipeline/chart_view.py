from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

import pandas as pd
from pydantic import BaseModel, Field

from safety_aggregates.core.grouper import (
    Bucket,
    KeyFn,
    Record,
    ValueFn,
    filter_buckets,
    group,
    seed_keys,
)
from safety_aggregates.core.presenter import (
    DEFAULT_BAR_COLOR,
    DisplayMode,
    format_series,
    gradient_colors,
)
from safety_aggregates.core.selector import (
    DEFAULT_THRESHOLD_FRACTION,
    DEFAULT_TOP_N,
    Selection,
    SortMode,
    select_all,
    sort_buckets,
    top_n,
    top_until_fraction,
)
from safety_aggregates.core.statistics import Summary, extremes, summarize_buckets

SelectionMode = Literal["all", "top_n", "threshold"]


class ViewOptions(BaseModel):
    """UI toggles of a single chart."""

    sort_mode: SortMode = "total"
    selection: SelectionMode = "all"
    top_n: int = Field(default=DEFAULT_TOP_N, ge=0)
    threshold: float = Field(default=DEFAULT_THRESHOLD_FRACTION, ge=0.0, le=1.0)
    display_mode: DisplayMode = "absolute"
    gradient: bool = False
    average_line: bool = False
    bar_color: str = DEFAULT_BAR_COLOR
    key_domain: list[str] = Field(default_factory=list)
    min_total: float | None = None


@dataclass(frozen=True)
class ChartView:
    buckets: tuple[Bucket, ...]
    values: tuple[float, ...]
    colors: tuple[str, ...]
    summary: Summary
    selection: Selection
    grand_total: float
    display_mode: DisplayMode
    average_line: float | None = None

    @property
    def labels(self) -> list[str]:
        return [bucket.key for bucket in self.buckets]

    @property
    def raw_values(self) -> list[float]:
        return [bucket.total for bucket in self.buckets]

    @property
    def is_empty(self) -> bool:
        return not self.buckets

    def legend(self) -> str | None:
        if self.selection.kind == "all":
            return None
        return self.selection.legend()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "key": self.labels,
                "total": self.raw_values,
                "count": [bucket.count for bucket in self.buckets],
                "value": list(self.values),
                "color": list(self.colors),
            },
            columns=["key", "total", "count", "value", "color"],
        )

    def summary_payload(self) -> dict[str, Any]:
        largest, smallest = extremes(self.buckets)
        return {
            "display_mode": self.display_mode,
            "grand_total": self.grand_total,
            "statistics": self.summary.to_dict(),
            "selection": {
                "kind": self.selection.kind,
                "item_count": self.selection.item_count,
                "cumulative_total": self.selection.cumulative_total,
                "percentage_of_grand_total": self.selection.percentage_of_grand_total,
            },
            "largest": None if largest is None else {"key": largest.key, "total": largest.total},
            "smallest": None
            if smallest is None
            else {"key": smallest.key, "total": smallest.total},
            "average_line": self.average_line,
        }


def _select(buckets: list[Bucket], options: ViewOptions) -> Selection:
    if options.selection == "top_n":
        return top_n(buckets, options.top_n)
    if options.selection == "threshold":
        return top_until_fraction(buckets, options.threshold)
    return select_all(buckets)


def build_buckets(
    records: Iterable[Record],
    key_fn: KeyFn,
    value_fn: ValueFn,
    options: ViewOptions,
) -> list[Bucket]:
    buckets = group(records, key_fn, value_fn)
    if options.min_total is not None:
        buckets = filter_buckets(buckets, options.min_total)
    if options.key_domain:
        buckets = seed_keys(buckets, options.key_domain)
    return buckets


def build_chart_view_from_buckets(buckets: list[Bucket], options: ViewOptions) -> ChartView:
    selection = _select(buckets, options)
    # top-N and "+50%" views are always ranked; the full view honours the sort toggle.
    if selection.kind == "all":
        shown = sort_buckets(selection.items, options.sort_mode)
    else:
        shown = list(selection.items)

    grand_total = selection.grand_total
    values = format_series(
        (bucket.total for bucket in shown), options.display_mode, grand_total
    )
    if options.gradient:
        colors = gradient_colors(bucket.total for bucket in shown)
    else:
        colors = [options.bar_color] * len(shown)

    summary = summarize_buckets(shown)
    average_line = None
    if options.average_line and options.display_mode == "absolute" and shown:
        average_line = summary.mean

    return ChartView(
        buckets=tuple(shown),
        values=tuple(values),
        colors=tuple(colors),
        summary=summary,
        selection=selection,
        grand_total=grand_total,
        display_mode=options.display_mode,
        average_line=average_line,
    )


def build_chart_view(
    records: Iterable[Record],
    key_fn: KeyFn,
    value_fn: ValueFn,
    options: ViewOptions | None = None,
) -> ChartView:
    """records -> buckets -> selection -> sorted, presented series with statistics."""
    options = options or ViewOptions()
    buckets = build_buckets(records, key_fn, value_fn, options)
    return build_chart_view_from_buckets(buckets, options)
