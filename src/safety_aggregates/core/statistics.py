from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from safety_aggregates.core.grouper import Bucket, coerce_value

SAMPLE_DDOF = 1


@dataclass(frozen=True)
class Summary:
    count: int
    total: float
    mean: float
    std_dev: float
    coefficient_of_variation: float
    count_above: int
    count_below: int
    minimum: float
    maximum: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


EMPTY_SUMMARY = Summary(
    count=0,
    total=0.0,
    mean=0.0,
    std_dev=0.0,
    coefficient_of_variation=0.0,
    count_above=0,
    count_below=0,
    minimum=0.0,
    maximum=0.0,
)


def _to_finite_array(values: Iterable[Any]) -> np.ndarray:
    return np.asarray([coerce_value(value) for value in values], dtype=float)


def _std_dev(values: np.ndarray, ddof: int) -> float:
    if values.size <= ddof or values.size < 2:
        return 0.0
    return float(np.std(values, ddof=ddof))


def summarize(values: Iterable[Any], ddof: int = SAMPLE_DDOF) -> Summary:
    """Summary statistics over ``values``; sample standard deviation by default."""
    array = _to_finite_array(values)
    if array.size == 0:
        return EMPTY_SUMMARY

    total = math.fsum(array.tolist())
    minimum = float(array.min())
    maximum = float(array.max())
    # Rounding can push the mean just outside the data; ties must stay neutral.
    mean = min(max(total / array.size, minimum), maximum)
    std_dev = _std_dev(array, ddof=ddof)
    return Summary(
        count=int(array.size),
        total=total,
        mean=mean,
        std_dev=std_dev,
        coefficient_of_variation=std_dev / mean if mean != 0 else 0.0,
        count_above=int((array > mean).sum()),
        count_below=int((array < mean).sum()),
        minimum=minimum,
        maximum=maximum,
    )


def summarize_buckets(buckets: Sequence[Bucket], ddof: int = SAMPLE_DDOF) -> Summary:
    return summarize((bucket.total for bucket in buckets), ddof=ddof)


def extremes(buckets: Sequence[Bucket]) -> tuple[Bucket | None, Bucket | None]:
    """Return the (largest, smallest) bucket by total; earliest wins ties."""
    if not buckets:
        return None, None
    largest = buckets[0]
    smallest = buckets[0]
    for bucket in buckets[1:]:
        if bucket.total > largest.total:
            largest = bucket
        if bucket.total < smallest.total:
            smallest = bucket
    return largest, smallest
