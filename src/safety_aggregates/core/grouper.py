from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

LOGGER = logging.getLogger(__name__)

Record = Mapping[str, Any]
KeyFn = Callable[[Record], Any]
ValueFn = Callable[[Record], Any]

DEFAULT_KEY_SEPARATOR = " - "


@dataclass(frozen=True)
class Bucket:
    key: str
    total: float
    count: int


def coerce_value(value: Any) -> float:
    """Return ``value`` as a finite float, or 0.0 when it is missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _is_numeric_zero(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool) and value == 0


def normalize_key(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # pandas widens integer columns with gaps to float; keep "2019", not "2019.0".
        value = int(value)
    key = str(value).strip()
    return key or None


def group(records: Iterable[Record], key_fn: KeyFn, value_fn: ValueFn) -> list[Bucket]:
    """Bucket ``records`` by ``key_fn`` and sum ``value_fn`` per bucket.

    Records with a missing key are dropped. Non-numeric values count as 0.
    Buckets come back in first-seen key order.
    """
    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    dropped = 0
    coerced = 0
    for record in records:
        key = normalize_key(key_fn(record))
        if key is None:
            dropped += 1
            continue
        raw_value = value_fn(record)
        value = coerce_value(raw_value)
        if value == 0.0 and not _is_numeric_zero(raw_value):
            coerced += 1
        totals[key] = totals.get(key, 0.0) + value
        counts[key] = counts.get(key, 0) + 1

    if dropped or coerced:
        LOGGER.debug(
            "Grouped %d keys (dropped %d records without key, coerced %d values to 0)",
            len(totals),
            dropped,
            coerced,
        )
    return [Bucket(key=key, total=totals[key], count=counts[key]) for key in totals]


def seed_keys(buckets: Sequence[Bucket], key_domain: Iterable[str]) -> list[Bucket]:
    """Merge a fixed key universe into ``buckets``.

    Every domain key is present in the result (zero-valued when absent from
    ``buckets``), in domain order, followed by any bucket whose key is outside
    the domain.
    """
    by_key = {bucket.key: bucket for bucket in buckets}
    seeded: list[Bucket] = []
    seen: set[str] = set()
    for raw_key in key_domain:
        key = normalize_key(raw_key)
        if key is None or key in seen:
            continue
        seen.add(key)
        seeded.append(by_key.get(key, Bucket(key=key, total=0.0, count=0)))
    seeded.extend(bucket for bucket in buckets if bucket.key not in seen)
    return seeded


def filter_buckets(buckets: Sequence[Bucket], min_total: float) -> list[Bucket]:
    return [bucket for bucket in buckets if bucket.total > min_total]


def column_key(*columns: str, separator: str = DEFAULT_KEY_SEPARATOR) -> KeyFn:
    """Key extractor joining one or more record columns, e.g. ``"2019 - Trim 3"``.

    A record missing any of the columns has no key.
    """
    if not columns:
        raise ValueError("column_key requires at least one column")

    def _key(record: Record) -> str | None:
        parts: list[str] = []
        for column in columns:
            part = normalize_key(record.get(column))
            if part is None:
                return None
            parts.append(part)
        return separator.join(parts)

    return _key


def column_value(column: str) -> ValueFn:
    def _value(record: Record) -> Any:
        return record.get(column)

    return _value


def sum_columns(columns: Sequence[str]) -> ValueFn:
    """Value extractor adding several numeric columns (e.g. one column per month)."""

    def _value(record: Record) -> float:
        return sum(coerce_value(record.get(column)) for column in columns)

    return _value


def count_value(_record: Record) -> int:
    return 1
