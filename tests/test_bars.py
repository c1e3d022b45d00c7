from __future__ import annotations

from pathlib import Path

import pytest

from safety_aggregates.core.grouper import Bucket
from safety_aggregates.pipeline.chart_view import ViewOptions, build_chart_view_from_buckets
from safety_aggregates.viz.bars import plot_chart_view
from safety_aggregates.viz.treemap import TREEMAP_HEIGHT, TREEMAP_WIDTH, treemap_rects

WEEKS = [Bucket(f"Sem {index}", float(index * 3 % 11), 1) for index in range(1, 13)]


@pytest.mark.parametrize("kind", ["bar", "barh", "line", "treemap"])
def test_plot_chart_view_writes_png(tmp_path: Path, kind: str) -> None:
    view = build_chart_view_from_buckets(
        WEEKS, ViewOptions(sort_mode="natural", average_line=True, gradient=True)
    )
    output_path = tmp_path / "figures" / f"semana_{kind}.png"

    result = plot_chart_view(view, output_path, title="Homicidios por Semana", kind=kind)

    assert result == output_path
    assert output_path.exists()
    assert output_path.stat().st_size > 0


def test_plot_chart_view_writes_pdf_with_selection_legend(tmp_path: Path) -> None:
    view = build_chart_view_from_buckets(
        WEEKS, ViewOptions(selection="threshold", display_mode="percentage")
    )
    output_path = tmp_path / "semana.pdf"

    plot_chart_view(view, output_path, title="Semanas con +50%")

    assert output_path.read_bytes().startswith(b"%PDF")


def test_plot_chart_view_rejects_unknown_format_and_kind(tmp_path: Path) -> None:
    view = build_chart_view_from_buckets(WEEKS, ViewOptions())

    with pytest.raises(ValueError, match="Unsupported figure format"):
        plot_chart_view(view, tmp_path / "semana.svg", title="x")
    with pytest.raises(ValueError, match="Unsupported chart kind"):
        plot_chart_view(view, tmp_path / "semana.png", title="x", kind="pie")  # type: ignore[arg-type]


def test_treemap_tiles_fill_the_canvas_in_proportion() -> None:
    values = [20.0, 50.0, 0.0, 30.0]

    rects = treemap_rects(values)

    assert [index for index, _ in rects] == [1, 3, 0]
    areas = {index: rect["dx"] * rect["dy"] for index, rect in rects}
    canvas = TREEMAP_WIDTH * TREEMAP_HEIGHT
    assert sum(areas.values()) == pytest.approx(canvas)
    assert areas[1] == pytest.approx(canvas * 0.5)
    assert areas[0] == pytest.approx(canvas * 0.2)


def test_treemap_with_zero_totals_has_no_tiles(tmp_path: Path) -> None:
    view = build_chart_view_from_buckets(
        [Bucket("A", 0.0, 1), Bucket("B", 0.0, 1)], ViewOptions(display_mode="percentage")
    )

    assert treemap_rects(view.values) == []
    output_path = plot_chart_view(view, tmp_path / "vacio.png", title="Sin datos", kind="treemap")
    assert output_path.exists()
