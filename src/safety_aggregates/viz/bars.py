from __future__ import annotations

from pathlib import Path
from typing import Literal

import matplotlib.pyplot as plt

from safety_aggregates.core.presenter import format_label, rgb_to_hex
from safety_aggregates.pipeline.chart_view import ChartView
from safety_aggregates.viz.common import save_figure
from safety_aggregates.viz.treemap import draw_treemap

ChartKind = Literal["bar", "barh", "line", "treemap"]

AVERAGE_LINE_COLOR = "#dc2626"
MAX_VALUE_LABELS = 40


def _axis_label(view: ChartView) -> str:
    return "%" if view.display_mode == "percentage" else "Total"


def plot_chart_view(
    view: ChartView,
    output_path: Path,
    title: str,
    kind: ChartKind = "bar",
    dpi: int = 150,
) -> Path:
    """Render a chart view to PNG or PDF, chosen by the suffix of ``output_path``."""
    labels = view.labels
    values = list(view.values)
    colors = [rgb_to_hex(color) for color in view.colors]
    if kind == "barh":
        figsize = (10.0, max(4.0, 0.3 * len(labels)))
    elif kind == "treemap":
        figsize = (10.0, 6.0)
    else:
        figsize = (min(max(8.0, 0.35 * len(labels)), 24.0), 5.0)

    fig, axis = plt.subplots(figsize=figsize)
    positions = list(range(len(labels)))
    if kind == "bar":
        axis.bar(positions, values, color=colors)
        axis.set_xticks(positions)
        axis.set_xticklabels(labels, rotation=45, ha="right", fontsize=8)
        axis.set_ylabel(_axis_label(view))
    elif kind == "barh":
        axis.barh(positions, values, color=colors)
        axis.set_yticks(positions)
        axis.set_yticklabels(labels, fontsize=8)
        axis.invert_yaxis()
        axis.set_xlabel(_axis_label(view))
    elif kind == "line":
        axis.plot(positions, values, color=colors[0] if colors else None, marker="o")
        axis.set_xticks(positions)
        axis.set_xticklabels(labels, rotation=45, ha="right", fontsize=8)
        axis.set_ylabel(_axis_label(view))
    elif kind == "treemap":
        draw_treemap(axis, labels, values, colors, view.display_mode)
    else:
        plt.close(fig)
        raise ValueError(f"Unsupported chart kind: {kind}")

    if kind == "bar" and len(labels) <= MAX_VALUE_LABELS:
        for position, value in zip(positions, values):
            axis.annotate(
                format_label(value, view.display_mode),
                (position, value),
                ha="center",
                va="bottom",
                fontsize=7,
            )

    # A treemap has no value axis to draw the mean on.
    if view.average_line is not None and kind != "treemap":
        line = axis.axvline if kind == "barh" else axis.axhline
        line(
            view.average_line,
            color=AVERAGE_LINE_COLOR,
            linewidth=1.5,
            linestyle="--",
            label=f"Media: {view.average_line:,.2f}",
        )
        axis.legend(loc="upper right")

    legend = view.legend()
    axis.set_title(f"{title}\n{legend}" if legend else title)
    return save_figure(output_path, dpi=dpi)
