from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

SUPPORTED_FIGURE_FORMATS = ("png", "pdf")


def save_figure(path: Path, dpi: int = 150) -> Path:
    fmt = path.suffix.lstrip(".").lower()
    if fmt not in SUPPORTED_FIGURE_FORMATS:
        plt.close()
        raise ValueError(f"Unsupported figure format: {path.suffix}")
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=dpi, format=fmt, facecolor="white")
    plt.close()
    return path
