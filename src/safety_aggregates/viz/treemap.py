from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import squarify
from matplotlib.axes import Axes
from matplotlib.patches import Rectangle

from safety_aggregates.core.presenter import DisplayMode, format_label

TREEMAP_WIDTH = 100.0
TREEMAP_HEIGHT = 60.0
# Tiles smaller than this (in layout units) are drawn without a label.
MIN_LABEL_AREA = 40.0


def treemap_rects(values: Sequence[float]) -> list[tuple[int, dict[str, float]]]:
    """Squarified tiles for the positive ``values``, largest first.

    Returns ``(index, rect)`` pairs where ``index`` points back into ``values``
    and ``rect`` has ``x``, ``y``, ``dx`` and ``dy``. Zero and negative values get no tile.
    """
    positive = [(index, value) for index, value in enumerate(values) if value > 0]
    if not positive:
        return []
    positive.sort(key=lambda item: item[1], reverse=True)
    sizes = squarify.normalize_sizes(
        [value for _, value in positive], TREEMAP_WIDTH, TREEMAP_HEIGHT
    )
    rects = squarify.squarify(sizes, 0.0, 0.0, TREEMAP_WIDTH, TREEMAP_HEIGHT)
    return [(index, rect) for (index, _), rect in zip(positive, rects)]


def draw_treemap(
    axis: Axes,
    labels: Sequence[str],
    values: Sequence[float],
    colors: Sequence[Any],
    display_mode: DisplayMode,
) -> None:
    for index, rect in treemap_rects(values):
        axis.add_patch(
            Rectangle(
                (rect["x"], rect["y"]),
                rect["dx"],
                rect["dy"],
                facecolor=colors[index],
                edgecolor="white",
                linewidth=1.0,
            )
        )
        if rect["dx"] * rect["dy"] >= MIN_LABEL_AREA:
            axis.text(
                rect["x"] + rect["dx"] / 2,
                rect["y"] + rect["dy"] / 2,
                f"{labels[index]}\n{format_label(values[index], display_mode)}",
                ha="center",
                va="center",
                fontsize=7,
            )
    axis.set_xlim(0.0, TREEMAP_WIDTH)
    axis.set_ylim(0.0, TREEMAP_HEIGHT)
    axis.set_axis_off()
