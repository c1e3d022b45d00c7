from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from safety_aggregates.pipeline.chart_view import ChartView

LOGGER = logging.getLogger(__name__)

TABLE_FORMATS = ("csv", "parquet")


def write_view_table(view: ChartView, path: Path, fmt: str = "csv") -> Path:
    """Write the displayed buckets (key, raw total, count, presented value, colour)."""
    if fmt not in TABLE_FORMATS:
        raise ValueError(f"Unsupported table format: {fmt}")
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = view.to_frame()
    if fmt == "parquet":
        frame.to_parquet(path, index=False)
    else:
        frame.to_csv(path, index=False)
    LOGGER.debug("Wrote %d buckets to %s", len(frame), path)
    return path


def summary_document(
    view: ChartView,
    dataset: str,
    filters: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    return {"dataset": dataset, "filters": dict(filters or {}), **view.summary_payload()}


def write_view_summary(
    view: ChartView,
    path: Path,
    *,
    dataset: str,
    filters: Mapping[str, str] | None = None,
) -> Path:
    """Write the view's statistics and selection as JSON; accented keys stay readable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    document = summary_document(view, dataset, filters)
    path.write_text(
        json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8"
    )
    return path
