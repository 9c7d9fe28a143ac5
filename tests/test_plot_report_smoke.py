from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def _results(root: Path) -> list[str]:
    folder = root / "Algorithm_Run"
    folder.mkdir(parents=True, exist_ok=True)
    out = []
    for alg in "AB":
        for run in (1, 2):
            path = folder / f"{alg}_{run}.csv"
            path.write_text("Plot,X,Y\nDET,0.01,0.3\n", encoding="utf-8")
            out.append(str(path))
    return out


def test_plot_report_dry_run_prints_script(tmp_path: Path) -> None:
    files = _results(tmp_path)
    cmd = [
        sys.executable,
        str(ROOT / "scripts" / "plot_report.py"),
        *files,
        "--utils-script",
        "/opt/openbr/plot_utils.R",
        "--destination",
        str(tmp_path / "report.png"),
        "--option",
        "det:title=Errors",
        "--dry-run",
    ]
    proc = subprocess.run(cmd, cwd=str(ROOT), capture_output=True, text=True, check=False)
    assert proc.returncode == 0, proc.stderr or proc.stdout
    assert proc.stdout.startswith('source("/opt/openbr/plot_utils.R")')
    assert "png(" in proc.stdout
    assert 'title="Errors"' in proc.stdout
    assert not (tmp_path / "report.R").exists()


def test_plot_report_missing_rscript_reports_failure(tmp_path: Path) -> None:
    files = _results(tmp_path)
    cmd = [
        sys.executable,
        str(ROOT / "scripts" / "plot_report.py"),
        *files,
        "--utils-script",
        "/opt/openbr/plot_utils.R",
        "--destination",
        str(tmp_path / "report.pdf"),
        "--rscript",
        "definitely-not-an-rscript-binary",
        "--emit-plan",
    ]
    proc = subprocess.run(cmd, cwd=str(ROOT), capture_output=True, text=True, check=False)
    assert proc.returncode == 1, proc.stderr or proc.stdout
    assert "success=False" in proc.stdout
    assert (tmp_path / "report.R").exists()
    assert (tmp_path / "report.plan.json").exists()


def test_plot_report_bad_option_exits_2(tmp_path: Path) -> None:
    files = _results(tmp_path)
    cmd = [
        sys.executable,
        str(ROOT / "scripts" / "plot_report.py"),
        *files,
        "--utils-script",
        "/opt/openbr/plot_utils.R",
        "--destination",
        str(tmp_path / "report.pdf"),
        "--option",
        "roc:bogus=1",
        "--dry-run",
    ]
    proc = subprocess.run(cmd, cwd=str(ROOT), capture_output=True, text=True, check=False)
    assert proc.returncode == 2
    assert "bogus" in proc.stderr


def test_plot_report_without_utils_script_exits_2(tmp_path: Path) -> None:
    files = _results(tmp_path)
    env = {k: v for k, v in os.environ.items() if k != "PIVOT_REPORT_PLOT_UTILS"}
    cmd = [
        sys.executable,
        str(ROOT / "scripts" / "plot_report.py"),
        *files,
        "--destination",
        str(tmp_path / "report.pdf"),
        "--dry-run",
    ]
    proc = subprocess.run(cmd, cwd=str(ROOT), capture_output=True, text=True, check=False, env=env)
    assert proc.returncode == 2
    assert "plot_utils.R" in proc.stderr
