from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from safety_aggregates.core.grouper import DEFAULT_KEY_SEPARATOR
from safety_aggregates.core.presenter import DEFAULT_BAR_COLOR, DisplayMode
from safety_aggregates.core.selector import (
    DEFAULT_THRESHOLD_FRACTION,
    DEFAULT_TOP_N,
    SortMode,
)

DATA_DIR_ENV = "SAFETY_AGGREGATES_DATA_DIR"
# Filter value meaning "every value of this column", like the dashboard's "Todos" option.
ALL_VALUES = "todos"


class DatasetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    title: str | None = None
    key_columns: list[str] = Field(min_length=1)
    key_separator: str = DEFAULT_KEY_SEPARATOR
    value_column: str | None = None
    value_columns: list[str] = Field(default_factory=list)
    filters: dict[str, str] = Field(default_factory=dict)
    key_domain: list[str] = Field(default_factory=list)
    min_total: float | None = None
    sort_mode: SortMode = "total"

    @model_validator(mode="after")
    def _single_value_source(self) -> DatasetConfig:
        if self.value_column and self.value_columns:
            raise ValueError("Set either value_column or value_columns, not both")
        return self

    def with_filters(self, overrides: Mapping[str, str]) -> DatasetConfig:
        """Copy with ``overrides`` merged into ``filters``.

        An override whose value is ``todos`` lifts that column's filter.
        """
        filters = dict(self.filters)
        for column, value in overrides.items():
            if value.strip().casefold() == ALL_VALUES:
                filters.pop(column, None)
            else:
                filters[column] = value
        return self.model_copy(update={"filters": filters})


class DisplayConfig(BaseModel):
    top_n: int = Field(default=DEFAULT_TOP_N, ge=1)
    threshold: float = Field(default=DEFAULT_THRESHOLD_FRACTION, gt=0.0, le=1.0)
    display_mode: DisplayMode = "absolute"
    gradient: bool = False
    average_line: bool = False
    bar_color: str = DEFAULT_BAR_COLOR


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "csv"
    figures_format: Literal["png", "pdf"] = "png"
    figure_dpi: int = Field(default=150, ge=50, le=600)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: str | None = None
    datasets: dict[str, DatasetConfig] = Field(default_factory=dict)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)

    def dataset(self, name: str) -> DatasetConfig:
        try:
            return self.datasets[name]
        except KeyError:
            available = ", ".join(sorted(self.datasets)) or "none"
            raise ValueError(f"Unknown dataset '{name}'. Available: {available}") from None


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_path(path_value: str, base_dir: Path) -> str:
    candidate = Path(path_value).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    data_dir = os.getenv(DATA_DIR_ENV) or config.data_dir
    config.data_dir = _resolve_path(data_dir, base_dir) if data_dir else str(base_dir)
    for dataset in config.datasets.values():
        dataset.path = _resolve_path(dataset.path, Path(config.data_dir))
    return config
