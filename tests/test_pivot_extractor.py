from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pivot_report.pivots.extractor import FALLBACK_HEADER, extract_file_tags, extract_tags


def test_extract_tags_splits_stem_and_parent_dir() -> None:
    path = "results/Algorithm_Dataset/FaceRecognition_LFW.csv"
    assert extract_tags(path) == ("FaceRecognition", "LFW")
    assert extract_tags(path, headers=True) == ("Algorithm", "Dataset")


def test_extract_tags_without_delimiter_is_single_tag() -> None:
    assert extract_tags("runs/Algorithm/A.csv") == ("A",)
    assert extract_tags("runs/Algorithm/A.csv", headers=True) == ("Algorithm",)


def test_extract_tags_keeps_empty_segments() -> None:
    assert extract_tags("x/A_B/foo__bar.csv") == ("foo", "", "bar")


def test_extract_file_tags_consistent_counts() -> None:
    files = ["d/Algorithm_Run/A_1.csv", "d/Algorithm_Run/B_2.csv"]
    schema = extract_file_tags(files)
    assert schema.fallback is False
    assert schema.headers == ("Algorithm", "Run")
    assert schema.width == 2
    assert [f.values for f in schema.files] == [("A", "1"), ("B", "2")]


def test_extract_file_tags_mismatch_falls_back_for_every_file() -> None:
    files = ["d/Algorithm_Run/A_1.csv", "d/Algorithm_Run/B.csv", "d/Algorithm_Run/C_1_x.csv"]
    schema = extract_file_tags(files)
    assert schema.fallback is True
    assert schema.headers == (FALLBACK_HEADER,)
    assert [f.values for f in schema.files] == [("A_1",), ("B",), ("C_1_x",)]


def test_extract_file_tags_mismatch_late_in_list_still_falls_back() -> None:
    files = [f"d/Algorithm_Run/{name}_1.csv" for name in "ABCDE"] + ["d/Algorithm_Run/Z.csv"]
    schema = extract_file_tags(files)
    assert schema.fallback is True
    assert all(len(f.values) == 1 for f in schema.files)


def test_extract_file_tags_empty() -> None:
    schema = extract_file_tags([])
    assert schema.headers == ()
    assert schema.files == ()


def test_bare_file_name_header_is_current_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert extract_tags("A_1.csv", headers=True) == (".",)
    schema = extract_file_tags(["A.csv", "B.csv"])
    assert schema.headers == (".",)
    assert [f.values for f in schema.files] == [("A",), ("B",)]
