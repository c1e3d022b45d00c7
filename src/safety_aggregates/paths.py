from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    tables: Path
    figures: Path
    summary: Path

    def table(self, name: str, fmt: str) -> Path:
        return self.tables / f"{name}.{fmt}"

    def figure(self, name: str, fmt: str) -> Path:
        return self.figures / f"{name}.{fmt}"

    def summary_file(self, name: str) -> Path:
        return self.summary / f"{name}.json"


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        tables=out_dir / "tables",
        figures=out_dir / "figures",
        summary=out_dir / "summary",
    )
    for path in (paths.root, paths.tables, paths.figures, paths.summary):
        path.mkdir(parents=True, exist_ok=True)
    return paths
