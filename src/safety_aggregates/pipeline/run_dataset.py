from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from safety_aggregates.config import AppConfig, DatasetConfig, DisplayConfig
from safety_aggregates.core.grouper import (
    KeyFn,
    ValueFn,
    column_key,
    column_value,
    count_value,
    sum_columns,
)
from safety_aggregates.io.read import load_dataset_records
from safety_aggregates.io.write import write_view_summary, write_view_table
from safety_aggregates.paths import build_output_paths
from safety_aggregates.pipeline.chart_view import ChartView, ViewOptions, build_chart_view
from safety_aggregates.viz.bars import ChartKind, plot_chart_view

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetRun:
    name: str
    view: ChartView
    table_path: Path | None = None
    summary_path: Path | None = None
    figure_path: Path | None = None


def dataset_extractors(dataset: DatasetConfig) -> tuple[KeyFn, ValueFn]:
    key_fn = column_key(*dataset.key_columns, separator=dataset.key_separator)
    if dataset.value_columns:
        return key_fn, sum_columns(dataset.value_columns)
    if dataset.value_column:
        return key_fn, column_value(dataset.value_column)
    return key_fn, count_value


def view_options_for(
    dataset: DatasetConfig,
    display: DisplayConfig,
    **overrides: Any,
) -> ViewOptions:
    """Dataset and display defaults, with ``None`` overrides ignored."""
    options: dict[str, Any] = {
        "sort_mode": dataset.sort_mode,
        "top_n": display.top_n,
        "threshold": display.threshold,
        "display_mode": display.display_mode,
        "gradient": display.gradient,
        "average_line": display.average_line,
        "bar_color": display.bar_color,
        "key_domain": list(dataset.key_domain),
        "min_total": dataset.min_total,
    }
    options.update({key: value for key, value in overrides.items() if value is not None})
    return ViewOptions.model_validate(options)


def resolve_dataset(
    config: AppConfig,
    name: str,
    filters: Mapping[str, str] | None = None,
) -> DatasetConfig:
    """The named dataset with run-time ``filters`` merged over its configured ones."""
    dataset = config.dataset(name)
    return dataset.with_filters(filters) if filters else dataset


def _title(dataset: DatasetConfig, name: str, filters: Mapping[str, str] | None) -> str:
    title = dataset.title or name
    narrowed = [
        f"{column}: {value}"
        for column, value in (filters or {}).items()
        if column in dataset.filters
    ]
    return f"{title} ({', '.join(narrowed)})" if narrowed else title


def _build_view(
    name: str,
    dataset: DatasetConfig,
    config: AppConfig,
    options: ViewOptions | None,
) -> ChartView:
    records = load_dataset_records(dataset)
    key_fn, value_fn = dataset_extractors(dataset)
    options = options or view_options_for(dataset, config.display)
    view = build_chart_view(records, key_fn, value_fn, options)
    LOGGER.info(
        "Built view for %s: %d buckets, grand total %s",
        name,
        len(view.buckets),
        view.grand_total,
    )
    return view


def build_dataset_view(
    name: str,
    config: AppConfig,
    options: ViewOptions | None = None,
    filters: Mapping[str, str] | None = None,
) -> ChartView:
    return _build_view(name, resolve_dataset(config, name, filters), config, options)


def run_dataset(
    name: str,
    config: AppConfig,
    out_dir: Path,
    options: ViewOptions | None = None,
    *,
    filters: Mapping[str, str] | None = None,
    render: bool = False,
    kind: ChartKind = "bar",
    figure_format: str | None = None,
) -> DatasetRun:
    """Aggregate one dataset and write its table, summary and (optionally) figure."""
    paths = build_output_paths(out_dir)
    dataset = resolve_dataset(config, name, filters)
    view = _build_view(name, dataset, config, options)

    tables_format = config.outputs.tables_format
    table_path = write_view_table(view, paths.table(name, tables_format), fmt=tables_format)
    summary_path = write_view_summary(
        view, paths.summary_file(name), dataset=name, filters=dataset.filters
    )

    figure_path: Path | None = None
    if render:
        if view.is_empty:
            LOGGER.warning("Dataset %s produced no buckets; skipping figure", name)
        else:
            figure_path = plot_chart_view(
                view,
                paths.figure(name, figure_format or config.outputs.figures_format),
                title=_title(dataset, name, filters),
                kind=kind,
                dpi=config.outputs.figure_dpi,
            )

    return DatasetRun(
        name=name,
        view=view,
        table_path=table_path,
        summary_path=summary_path,
        figure_path=figure_path,
    )
