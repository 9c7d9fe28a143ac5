from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from pivot_report.errors import SchemaError
from pivot_report.pivots.model import PivotModel

PLOT_COLUMN = "Plot"


def _read_csv(path: str | Path, nrows: int | None = None) -> pd.DataFrame:
    try:
        return pd.read_csv(path, nrows=nrows)
    except (OSError, ValueError) as exc:
        raise SchemaError(f"Failed to open {path} for reading: {exc}") from exc


def load_results(model: PivotModel, required: Iterable[str] = ("X", "Y")) -> pd.DataFrame:
    """Concatenate every input table, stamping each file's tag values as columns."""

    required_cols = [str(c) for c in required]
    frames: list[pd.DataFrame] = []
    for path, tags in model.rows():
        frame = _read_csv(path)
        missing = [col for col in required_cols if col not in frame.columns]
        if missing:
            raise SchemaError(f"{path} is missing required column(s): {', '.join(missing)}")
        for header, value in tags.items():
            frame[header] = value
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=[*required_cols, *model.headers])
    return pd.concat(frames, ignore_index=True, sort=False)


def validate_columns(model: PivotModel, required: Iterable[str]) -> None:
    """Check headers only; raises SchemaError on the first file lacking a required column."""

    required_cols = [str(c) for c in required]
    if not required_cols:
        return
    for path, _ in model.rows():
        columns = set(_read_csv(path, nrows=0).columns)
        missing = [col for col in required_cols if col not in columns]
        if missing:
            raise SchemaError(f"{path} is missing required column(s): {', '.join(missing)}")


def count_plot_rows(path: str | Path, plot: str) -> int:
    frame = _read_csv(path)
    if PLOT_COLUMN not in frame.columns:
        return 0
    return int(frame[PLOT_COLUMN].astype(str).str.contains(plot, regex=False).sum())


def files_have_single_point(files: Iterable[str | Path], plot: str = "DiscreteROC") -> bool:
    """True when any detection file carries at most one operating point for ``plot``."""

    return any(count_plot_rows(path, plot) <= 1 for path in files)
