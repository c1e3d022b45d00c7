from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd

from safety_aggregates.config import DatasetConfig
from safety_aggregates.core.grouper import Record, normalize_key

LOGGER = logging.getLogger(__name__)


def _frame_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    # Missing cells become None so the grouper sees one "missing" sentinel.
    cleaned = df.astype(object).where(df.notna(), None)
    return cleaned.to_dict(orient="records")


def load_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")
    if path.suffix == ".json":
        # Keep JSON types as written: "001" is a code, not the number 1.
        return pd.read_json(
            path, orient="records", dtype=False, convert_dates=False, keep_default_dates=False
        )
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def load_records(path: Path) -> list[dict[str, Any]]:
    """Load a JSON array of objects (or a CSV/parquet table) as a list of records."""
    records = _frame_to_records(load_table(path))
    LOGGER.info("Loaded %d records from %s", len(records), path)
    return records


def apply_filters(records: Iterable[Record], filters: Mapping[str, str]) -> list[Record]:
    """Keep records whose columns match every filter value (case-insensitive)."""
    if not filters:
        return list(records)
    expected = {column: str(value).strip().casefold() for column, value in filters.items()}
    kept: list[Record] = []
    for record in records:
        if all(
            (normalize_key(record.get(column)) or "").casefold() == value
            for column, value in expected.items()
        ):
            kept.append(record)
    return kept


def _validate_columns(records: list[Record], dataset: DatasetConfig) -> None:
    if not records:
        return
    columns = set(records[0].keys())
    required = [*dataset.key_columns, *dataset.filters]
    if dataset.value_column:
        required.append(dataset.value_column)
    missing = [column for column in dict.fromkeys(required) if column not in columns]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in {dataset.path}: {missing_str}")


def load_dataset_records(dataset: DatasetConfig) -> list[Record]:
    records = load_records(Path(dataset.path))
    _validate_columns(records, dataset)
    filtered = apply_filters(records, dataset.filters)
    if dataset.filters:
        LOGGER.info("Filters kept %d of %d records", len(filtered), len(records))
    return filtered
