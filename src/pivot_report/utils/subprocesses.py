from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def has_command(name: str) -> bool:
    return shutil.which(str(name)) is not None


def run_command(
    command: list[str],
    cwd: Path | None = None,
    timeout_s: float | None = None,
    check: bool = False,
) -> CommandResult:
    proc = subprocess.run(
        [str(x) for x in command],
        cwd=str(cwd) if cwd is not None else None,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=timeout_s,
        check=False,
    )
    result = CommandResult(
        command=[str(x) for x in command],
        returncode=int(proc.returncode),
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if check and result.returncode != 0:
        raise RuntimeError(f"command failed ({result.returncode}): {' '.join(result.command)}\n{result.stderr.strip()}")
    return result


def run_rscript(
    script: Path,
    rscript: str = "Rscript",
    timeout_s: float | None = None,
) -> CommandResult:
    """Execute a generated R script; a missing interpreter is reported as exit code 127."""

    if not has_command(rscript):
        return CommandResult(
            command=[str(rscript), str(script)],
            returncode=127,
            stdout="",
            stderr=f"{rscript}: command not found",
        )
    return run_command([rscript, str(script)], timeout_s=timeout_s, check=False)


def open_file(path: Path) -> bool:
    """Hand a produced artifact to the platform viewer without waiting for it."""

    target = str(path)
    if sys.platform.startswith("win"):
        os.startfile(target)  # type: ignore[attr-defined]
        return True
    opener = "open" if sys.platform == "darwin" else "xdg-open"
    if not has_command(opener):
        return False
    subprocess.Popen([opener, target], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    return True
