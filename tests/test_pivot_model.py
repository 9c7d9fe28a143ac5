from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pivot_report.errors import EmptyInputError, ReportError
from pivot_report.pivots.model import Pivot, PivotCandidate, PivotModel, apply_smoothing, normalize_files, rank_candidates


def _six_files() -> list[str]:
    return [f"out/Algorithm_Run/{alg}_{run}.csv" for alg in "ABC" for run in (1, 2)]


def test_six_file_scenario_major_algorithm_minor_run() -> None:
    model = PivotModel.from_files(_six_files())
    assert model.major.header == "Algorithm"
    assert model.major.size == 3
    assert model.major.index == 0
    assert model.minor.header == "Run"
    assert model.minor.size == 2
    assert model.default_ncol() == 3
    assert model.flip is False
    assert model.smoothed is False


def test_empty_file_list_raises() -> None:
    with pytest.raises(EmptyInputError, match="Empty file list."):
        PivotModel.from_files([])
    assert issubclass(EmptyInputError, ReportError)


def test_files_are_sorted_and_deduplicated() -> None:
    assert normalize_files(["b/x_y/B_1.csv", "b/x_y/A_1.csv", "b/x_y/B_1.csv"]) == ["b/x_y/A_1.csv", "b/x_y/B_1.csv"]
    model = PivotModel.from_files(["o/A_B/z_1.csv", "o/A_B/a_2.csv"])
    assert model.files == ("o/A_B/a_2.csv", "o/A_B/z_1.csv")


def test_rank_ties_keep_lower_index() -> None:
    cands = [
        PivotCandidate(index=0, header="First", values=frozenset({"a", "b"})),
        PivotCandidate(index=1, header="Second", values=frozenset({"c", "d"})),
        PivotCandidate(index=2, header="Third", values=frozenset({"e"})),
    ]
    major, minor = rank_candidates(cands)
    assert (major.header, minor.header) == ("First", "Second")


def test_rank_single_candidate_leaves_minor_empty() -> None:
    major, minor = rank_candidates([PivotCandidate(index=0, header="Only", values=frozenset({"a", "b", "c"}))])
    assert major.size == 3
    assert minor.is_empty
    assert minor.index == -1


def test_major_never_smaller_than_minor() -> None:
    files = [f"r/Alg_Set_Seed/{a}_{s}_{d}.csv" for a in "AB" for s in "xyz" for d in "1234"]
    model = PivotModel.from_files(files)
    assert model.major.size >= model.minor.size
    assert model.major.header == "Seed"
    assert model.minor.header == "Set"


def test_smoothing_major_collapses_and_swaps() -> None:
    model = PivotModel.from_files(_six_files(), smooth="Algorithm")
    assert model.major.header == "Run"
    assert model.major.size == 2
    assert model.minor.header == "Algorithm"
    assert model.minor.size == 1
    assert model.minor.smooth is True
    assert model.smoothed is True
    assert model.flip is True


def test_smoothing_unknown_header_is_noop() -> None:
    model = PivotModel.from_files(_six_files(), smooth="Nope")
    assert model.major.size == 3
    assert model.smoothed is False


def test_apply_smoothing_ignores_size_one_pivot() -> None:
    major = Pivot(index=0, size=1, header="Run")
    minor = Pivot()
    out_major, out_minor = apply_smoothing(major, minor, "Run")
    assert out_major.smooth is False
    assert out_minor.is_empty


def test_inconsistent_tags_use_file_pivot() -> None:
    files = ["x/Algorithm_Run/A_1.csv", "x/Algorithm_Run/B.csv", "x/Algorithm_Run/C_3.csv"]
    model = PivotModel.from_files(files)
    assert model.headers == ("File",)
    assert model.major.header == "File"
    assert model.major.size == 3
    assert model.minor.is_empty
    assert model.default_ncol() == 3


def test_algorithm_header_is_configurable() -> None:
    files = [f"o/Method_Variant/{v}_{m}.csv" for v in "abc" for m in "xy"]
    model = PivotModel.from_files(files, algorithm_header="Variant")
    assert model.minor.header == "Variant"
    assert model.flip is True
    assert PivotModel.from_files(files).flip is False


def test_group_header_and_rows() -> None:
    model = PivotModel.from_files(["o/Algorithm_Run/A_1.csv", "o/Algorithm_Run/A_2.csv"])
    assert model.major.header == "Run"
    assert model.group_header == "Run"
    rows = list(model.rows())
    assert rows[0] == ("o/Algorithm_Run/A_1.csv", {"Algorithm": "A", "Run": "1"})
    assert model.candidate("Algorithm").size == 1
    assert model.candidate("missing") is None


def test_single_file_has_size_one_pivots() -> None:
    model = PivotModel.from_files(["o/Algorithm_Run/A_1.csv"])
    assert model.major.size == 1
    assert model.minor.header == "Run"
    assert model.default_ncol() == 1


def test_bare_file_names_form_a_real_pivot() -> None:
    model = PivotModel.from_files(["A.csv", "B.csv"])
    assert model.major.header == "."
    assert model.major.size == 2
    assert model.major.is_empty is False
    assert model.group_header == "."
