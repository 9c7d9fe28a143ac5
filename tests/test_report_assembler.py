from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pivot_report.config import ReportConfig
from pivot_report.errors import EmptyInputError, OptionError, OutputPathError, ReportError, SchemaError
from pivot_report.report.assembler import UTILS_MODES, assemble, prepare, render_script
from pivot_report.utils.subprocesses import CommandResult

UTILS_SCRIPT = "/opt/openbr/plot_utils.R"


@pytest.fixture(autouse=True)
def _plot_utils(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIVOT_REPORT_PLOT_UTILS", UTILS_SCRIPT)


def _write_results(root: Path, header: str = "Algorithm_Run", names: list[str] | None = None) -> list[Path]:
    names = names or [f"{a}_{r}" for a in "ABC" for r in (1, 2)]
    folder = root / header
    folder.mkdir(parents=True, exist_ok=True)
    out = []
    for name in names:
        path = folder / f"{name}.csv"
        path.write_text("Plot,X,Y\nDET,0.01,0.2\nDET,0.1,0.5\nCMC,1,0.8\n", encoding="utf-8")
        out.append(path)
    return out


class _Runner:
    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: list[tuple[Path, str, float | None]] = []

    def __call__(self, script: Path, rscript: str = "Rscript", timeout_s: float | None = None) -> CommandResult:
        self.calls.append((Path(script), rscript, timeout_s))
        return CommandResult(command=[rscript, str(script)], returncode=self.returncode, stdout="", stderr="boom")


def test_empty_files_raise_before_any_io(tmp_path: Path) -> None:
    runner = _Runner()
    with pytest.raises(EmptyInputError):
        assemble([], {"destination": str(tmp_path / "r.pdf")}, runner=runner)
    assert runner.calls == []
    assert not (tmp_path / "r.R").exists()


def test_render_script_is_byte_identical(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    cfg = {"destination": str(tmp_path / "out" / "report.pdf")}
    first = render_script(files, cfg)
    second = render_script(list(reversed(files)), cfg)
    assert first == second
    assert first.count("read.csv(") == 6


def test_assemble_success_writes_script_and_runs(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    runner = _Runner(0)
    opened: list[Path] = []
    cfg = ReportConfig(destination=str(tmp_path / "out" / "report.pdf"), show=True, timeout_s=30.0, rscript="/usr/bin/Rscript")
    artifact = assemble(files, cfg, runner=runner, opener=opened.append)
    assert artifact.success is True
    assert artifact.script_path == Path(f"{tmp_path / 'out' / 'report'}.R")
    assert artifact.script_path.exists()
    assert artifact.output_path == tmp_path / "out" / "report.pdf"
    assert artifact.panels == 7
    assert artifact.plan_path is None
    assert runner.calls == [(artifact.script_path, "/usr/bin/Rscript", 30.0)]
    assert opened == [artifact.output_path]


def test_assemble_failure_keeps_script_and_skips_show(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    opened: list[Path] = []
    cfg = {"destination": str(tmp_path / "report.pdf"), "show": True}
    artifact = assemble(files, cfg, runner=_Runner(1), opener=opened.append)
    assert artifact.success is False
    assert artifact.result is not None and artifact.result.returncode == 1
    assert artifact.script_path.exists()
    assert opened == []


def test_assemble_timeout_is_failure(tmp_path: Path) -> None:
    files = _write_results(tmp_path)

    def _slow(script: Path, rscript: str = "Rscript", timeout_s: float | None = None) -> CommandResult:
        raise subprocess.TimeoutExpired(cmd=[rscript, str(script)], timeout=timeout_s or 1.0)

    artifact = assemble(files, {"destination": str(tmp_path / "report.pdf"), "timeout_s": 1}, runner=_slow)
    assert artifact.success is False
    assert artifact.result.returncode == 124


def test_assemble_emits_plan_json(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    artifact = assemble(files, {"destination": str(tmp_path / "report.png"), "emit_plan": True}, runner=_Runner(0))
    assert artifact.plan_path == Path(f"{tmp_path / 'report'}.plan.json")
    assert artifact.plan_path.exists()
    assert '"suffix": "png"' in artifact.plan_path.read_text(encoding="utf-8")


def test_unwritable_destination_raises(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    runner = _Runner(0)
    with pytest.raises(OutputPathError):
        assemble(files, {"destination": str(blocker / "report.pdf")}, runner=runner)
    assert runner.calls == []


def test_missing_columns_raise_schema_error(tmp_path: Path) -> None:
    folder = tmp_path / "Algorithm_Run"
    folder.mkdir()
    bad = folder / "A_1.csv"
    bad.write_text("X,Y\n1,2\n", encoding="utf-8")
    with pytest.raises(SchemaError, match="Plot"):
        render_script([bad], {"destination": "r.pdf"})
    assert "read.csv(" in render_script([bad], {"destination": "r.pdf", "validate_inputs": False})


def test_missing_file_raises_schema_error(tmp_path: Path) -> None:
    with pytest.raises(SchemaError):
        render_script([tmp_path / "Algorithm_Run" / "A_1.csv"], {"destination": "r.pdf"})


def test_destination_and_mode_errors(tmp_path: Path) -> None:
    files = _write_results(tmp_path)
    with pytest.raises(OptionError):
        render_script(files, {})
    with pytest.raises(OptionError):
        render_script(files, {"destination": "r.pdf"}, mode="unknown")
    with pytest.raises(ReportError):
        render_script(files, {"destination": "r.pdf", "options": {"roc": ["bogus=1"]}})


def test_metadata_mode_defaults_destination(tmp_path: Path) -> None:
    folder = tmp_path / "Algorithm"
    folder.mkdir()
    files = []
    for name in ("A", "B"):
        path = folder / f"{name}.csv"
        path.write_text("Age,Gender\n30,F\n41,M\n", encoding="utf-8")
        files.append(path)
    prepared = prepare(files, {"columns": "Age"}, mode="metadata")
    assert prepared.plan.device.output_path == "PlotMetadata.pdf"
    assert [p.y for p in prepared.plan.panels()] == ["Age"]
    with pytest.raises(SchemaError):
        prepare(files, {"columns": ["Height"]}, mode="metadata")


def test_detection_single_point_uses_points(tmp_path: Path) -> None:
    folder = tmp_path / "Algorithm_Run"
    folder.mkdir()
    full = folder / "A_1.csv"
    full.write_text("Plot,X,Y\nDiscreteROC,0.1,0.2\nDiscreteROC,0.3,0.6\n", encoding="utf-8")
    single = folder / "B_1.csv"
    single.write_text("Plot,X,Y\nDiscreteROC,0.1,0.2\nContinuousROC,0.3,0.6\n", encoding="utf-8")
    multi = prepare([full], {"destination": "d.pdf"}, mode="detection")
    assert multi.plan.panels()[0].geometry == "line"
    mixed = prepare([full, single], {"destination": "d.pdf"}, mode="detection")
    assert [p.geometry for p in mixed.plan.panels()[:4]] == ["point"] * 4


def test_helper_modes_require_plot_utils(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    files = _write_results(tmp_path)
    monkeypatch.delenv("PIVOT_REPORT_PLOT_UTILS")
    runner = _Runner(0)
    assert UTILS_MODES == {"general", "landmarking"}
    for mode in ("general", "landmarking"):
        with pytest.raises(OptionError, match="plot_utils.R"):
            assemble(files, {"destination": str(tmp_path / "r.pdf")}, mode, runner=runner)
    assert runner.calls == []
    assert not (tmp_path / "r.R").exists()
    script = render_script(files, {"destination": "r.pdf", "utils_script": "lib/plot_utils.R"})
    assert script.startswith('source("lib/plot_utils.R")')
    assert "source(" not in render_script(files, {"destination": "d.pdf"}, mode="detection")


def test_bare_file_names_use_working_directory_header(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("A", "B"):
        (tmp_path / f"{name}.csv").write_text("Plot,X,Y\nDET,0.1,0.5\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    prepared = prepare(["A.csv", "B.csv"], {"destination": "report.pdf"})
    assert prepared.model.major.header == "."
    assert prepared.model.major.size == 2
    assert prepared.model.major.is_empty is False
    assert 'tmp[["."]] <- "A"' in prepared.script
    assert 'tmp[[""]]' not in prepared.script
    assert "colour=factor(`.`)" in prepared.script
    assert "factor(``)" not in prepared.script
