from __future__ import annotations

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from safety_aggregates.cli import app

SEMANAS = [
    {"semana": "Sem 1", "valor": 40, "estado": "Colima"},
    {"semana": "Sem 2", "valor": 10, "estado": "Jalisco"},
    {"semana": "Sem 10", "valor": 30, "estado": "Colima"},
    {"semana": "Sem 3", "valor": 20, "estado": "Jalisco"},
]


def _write_config(tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "Semana.json").write_text(json.dumps(SEMANAS), encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "data_dir": "data",
                "datasets": {
                    "homicidios_semana": {
                        "path": "Semana.json",
                        "title": "Homicidios por Semana",
                        "key_columns": ["semana"],
                        "value_column": "valor",
                        "sort_mode": "natural",
                    }
                },
            }
        ),
        encoding="utf-8",
    )
    return config_path


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "summarize" in result.stdout
    assert "top" in result.stdout
    assert "chart" in result.stdout
    assert "list-datasets" in result.stdout


def test_list_datasets(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(app, ["list-datasets", "--config", str(config_path)])

    assert result.exit_code == 0, result.stdout
    assert "homicidios_semana: Homicidios por Semana (Semana.json)" in result.stdout


def test_summarize_writes_outputs_and_prints_statistics(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        app,
        ["summarize", "homicidios_semana", "--config", str(config_path), "--out", str(out_dir)],
    )

    assert result.exit_code == 0, result.stdout
    assert "- buckets: 4" in result.stdout
    assert "- total: 100" in result.stdout
    assert "- mean: 25.00" in result.stdout
    assert "- std_dev: 12.91" in result.stdout
    assert "- above_mean: 2" in result.stdout
    assert (out_dir / "tables" / "homicidios_semana.csv").exists()
    summary = json.loads(
        (out_dir / "summary" / "homicidios_semana.json").read_text(encoding="utf-8")
    )
    assert summary["statistics"]["count"] == 4


def test_top_threshold_prints_selection_and_legend(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        ["top", "homicidios_semana", "--config", str(config_path), "--threshold", "0.5"],
    )

    assert result.exit_code == 0, result.stdout
    lines = result.stdout.rstrip().splitlines()
    assert lines[-3:] == [
        "  1. Sem 1: 40",
        "  2. Sem 10: 30",
        "2 items: 70.0% of total",
    ]


def test_top_defaults_to_configured_top_n_and_supports_percentages(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            "top",
            "homicidios_semana",
            "--config",
            str(config_path),
            "--display-mode",
            "percentage",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "  1. Sem 1: 40.00%" in result.stdout
    assert "4 items: 100.0% of total" in result.stdout


def test_top_rejects_both_selections(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            "top",
            "homicidios_semana",
            "--config",
            str(config_path),
            "--top-n",
            "2",
            "--threshold",
            "0.5",
        ],
    )

    assert result.exit_code != 0


def test_chart_writes_figure(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        app,
        [
            "chart",
            "homicidios_semana",
            "--config",
            str(config_path),
            "--out",
            str(out_dir),
            "--format",
            "pdf",
            "--kind",
            "line",
            "--average-line",
            "--gradient",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert (out_dir / "figures" / "homicidios_semana.pdf").exists()
    assert "Chart written to:" in result.stdout


def test_unknown_dataset_is_a_usage_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        ["summarize", "nope", "--config", str(config_path), "--out", str(tmp_path / "out")],
    )

    assert result.exit_code == 2


def test_top_filter_narrows_to_one_state(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            "top",
            "homicidios_semana",
            "--config",
            str(config_path),
            "--filter",
            "estado=colima",
            "--threshold",
            "1",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert result.stdout.rstrip().splitlines()[-3:] == [
        "  1. Sem 1: 40",
        "  2. Sem 10: 30",
        "2 items: 100.0% of total",
    ]


def test_summarize_records_filters_and_todos_keeps_everything(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    out_dir = tmp_path / "out"
    base = ["summarize", "homicidios_semana", "--config", str(config_path), "--out", str(out_dir)]

    narrowed = CliRunner().invoke(app, [*base, "--filter", "estado=Jalisco"])
    summary = json.loads(
        (out_dir / "summary" / "homicidios_semana.json").read_text(encoding="utf-8")
    )
    everything = CliRunner().invoke(app, [*base, "--filter", "estado=todos"])

    assert narrowed.exit_code == 0, narrowed.stdout
    assert "- buckets: 2" in narrowed.stdout
    assert summary["filters"] == {"estado": "Jalisco"}
    assert everything.exit_code == 0, everything.stdout
    assert "- buckets: 4" in everything.stdout


def test_malformed_filter_is_a_usage_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)

    result = CliRunner().invoke(
        app,
        ["top", "homicidios_semana", "--config", str(config_path), "--filter", "estado"],
    )

    assert result.exit_code == 2


def test_chart_renders_treemap(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        app,
        [
            "chart",
            "homicidios_semana",
            "--config",
            str(config_path),
            "--out",
            str(out_dir),
            "--kind",
            "treemap",
            "--filter",
            "estado=Colima",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert (out_dir / "figures" / "homicidios_semana.png").exists()
