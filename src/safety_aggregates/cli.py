from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer

from safety_aggregates.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from safety_aggregates.core.presenter import format_label
from safety_aggregates.logging import configure_logging
from safety_aggregates.pipeline.chart_view import ViewOptions
from safety_aggregates.pipeline.run_dataset import (
    build_dataset_view,
    run_dataset,
    view_options_for,
)

app = typer.Typer(no_args_is_help=True, add_completion=False)

FILTER_OPTION = typer.Option(
    None,
    "--filter",
    help="COLUMN=VALUE record filter; repeatable. VALUE 'todos' lifts a configured filter.",
)


class DisplayModeOption(str, Enum):
    absolute = "absolute"
    percentage = "percentage"


class SortModeOption(str, Enum):
    total = "total"
    key = "key"
    natural = "natural"
    none = "none"


class ChartKindOption(str, Enum):
    bar = "bar"
    barh = "barh"
    line = "line"
    treemap = "treemap"


class FigureFormatOption(str, Enum):
    png = "png"
    pdf = "pdf"


def _value(option: Enum | None) -> str | None:
    return None if option is None else option.value


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_dataset(cfg: AppConfig, dataset: str) -> None:
    try:
        cfg.dataset(dataset)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="DATASET") from exc


def _parse_filters(values: list[str] | None) -> dict[str, str]:
    filters: dict[str, str] = {}
    for item in values or []:
        column, separator, value = item.partition("=")
        if not separator or not column.strip() or not value.strip():
            raise typer.BadParameter(
                f"Expected COLUMN=VALUE, got '{item}'", param_hint="--filter"
            )
        filters[column.strip()] = value.strip()
    return filters


def _options(
    cfg: AppConfig,
    dataset: str,
    *,
    sort: SortModeOption | None = None,
    display_mode: DisplayModeOption | None = None,
    top_n: int | None = None,
    threshold: float | None = None,
    gradient: bool | None = None,
    average_line: bool | None = None,
) -> ViewOptions:
    if top_n is not None and threshold is not None:
        raise typer.BadParameter("Use either --top-n or --threshold, not both")
    selection = None
    if top_n is not None:
        selection = "top_n"
    elif threshold is not None:
        selection = "threshold"
    return view_options_for(
        cfg.dataset(dataset),
        cfg.display,
        sort_mode=_value(sort),
        display_mode=_value(display_mode),
        selection=selection,
        top_n=top_n,
        threshold=threshold,
        gradient=gradient,
        average_line=average_line,
    )


@app.command("list-datasets")
def list_datasets(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """List datasets defined in the config."""
    configure_logging()
    cfg = _load_app_config(config)
    if not cfg.datasets:
        typer.echo("No datasets configured.")
        return
    for name in sorted(cfg.datasets):
        dataset = cfg.datasets[name]
        typer.echo(f"{name}: {dataset.title or '-'} ({Path(dataset.path).name})")


@app.command()
def summarize(
    dataset: str = typer.Argument(..., help="Dataset name from the config."),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    display_mode: DisplayModeOption | None = typer.Option(None, help="absolute or percentage."),
    sort: SortModeOption | None = typer.Option(None, help="Bucket ordering."),
    filters: list[str] | None = FILTER_OPTION,
) -> None:
    """Aggregate a dataset, write its bucket table and summary, and print statistics."""
    configure_logging()
    cfg = _load_app_config(config)
    _require_dataset(cfg, dataset)
    options = _options(cfg, dataset, sort=sort, display_mode=display_mode)
    result = run_dataset(dataset, cfg, out, options, filters=_parse_filters(filters))

    stats = result.view.summary
    typer.echo(f"Summary for {dataset}")
    typer.echo(f"- buckets: {stats.count}")
    typer.echo(f"- total: {format_label(stats.total, 'absolute')}")
    typer.echo(f"- mean: {stats.mean:.2f}")
    typer.echo(f"- std_dev: {stats.std_dev:.2f}")
    typer.echo(f"- coefficient_of_variation: {stats.coefficient_of_variation * 100:.2f}%")
    typer.echo(f"- above_mean: {stats.count_above}")
    typer.echo(f"- below_mean: {stats.count_below}")
    typer.echo(f"Table: {result.table_path}")
    typer.echo(f"Summary: {result.summary_path}")


@app.command()
def top(
    dataset: str = typer.Argument(..., help="Dataset name from the config."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    top_n: int | None = typer.Option(None, "--top-n", "-n", min=1),
    threshold: float | None = typer.Option(
        None,
        min=0.0,
        max=1.0,
        help="Select the largest buckets until this fraction of the total is reached.",
    ),
    display_mode: DisplayModeOption | None = typer.Option(None, help="absolute or percentage."),
    filters: list[str] | None = FILTER_OPTION,
) -> None:
    """Print the top-N buckets, or the buckets that make up a share of the total."""
    configure_logging()
    cfg = _load_app_config(config)
    _require_dataset(cfg, dataset)
    if top_n is None and threshold is None:
        top_n = cfg.display.top_n
    options = _options(
        cfg, dataset, top_n=top_n, threshold=threshold, display_mode=display_mode
    )
    view = build_dataset_view(dataset, cfg, options, filters=_parse_filters(filters))

    for rank, (bucket, value) in enumerate(zip(view.buckets, view.values), start=1):
        typer.echo(f"{rank:>3}. {bucket.key}: {format_label(value, view.display_mode)}")
    typer.echo(view.legend() or "")


@app.command()
def chart(
    dataset: str = typer.Argument(..., help="Dataset name from the config."),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    fmt: FigureFormatOption | None = typer.Option(None, "--format", help="png or pdf."),
    kind: ChartKindOption = typer.Option(ChartKindOption.bar, help="bar, barh, line or treemap."),
    display_mode: DisplayModeOption | None = typer.Option(None, help="absolute or percentage."),
    sort: SortModeOption | None = typer.Option(None, help="Bucket ordering."),
    top_n: int | None = typer.Option(None, "--top-n", "-n", min=1),
    threshold: float | None = typer.Option(None, min=0.0, max=1.0),
    gradient: bool | None = typer.Option(None, "--gradient/--no-gradient"),
    average_line: bool | None = typer.Option(None, "--average-line/--no-average-line"),
    filters: list[str] | None = FILTER_OPTION,
) -> None:
    """Render a dataset chart to PNG or PDF alongside its table and summary."""
    configure_logging()
    cfg = _load_app_config(config)
    _require_dataset(cfg, dataset)
    options = _options(
        cfg,
        dataset,
        sort=sort,
        display_mode=display_mode,
        top_n=top_n,
        threshold=threshold,
        gradient=gradient,
        average_line=average_line,
    )
    result = run_dataset(
        dataset,
        cfg,
        out,
        options,
        filters=_parse_filters(filters),
        render=True,
        kind=kind.value,
        figure_format=_value(fmt),
    )
    if result.figure_path is None:
        typer.echo(f"No data for {dataset}; chart not written.")
        return
    typer.echo(f"Chart written to: {result.figure_path}")


if __name__ == "__main__":
    app()
