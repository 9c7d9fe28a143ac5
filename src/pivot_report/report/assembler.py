from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pivot_report.backends.plan_json import write_plan_json
from pivot_report.backends.rscript import render_r_script
from pivot_report.config import UTILS_ENV_VAR, ReportConfig, ReportSettings, resolve_report_config
from pivot_report.errors import OptionError, OutputPathError
from pivot_report.pivots.model import PivotModel
from pivot_report.pivots.table import files_have_single_point, validate_columns
from pivot_report.report.modes import DETECTION, GENERAL, LANDMARKING, METADATA, MODES, build_plan
from pivot_report.schemas import ReportPlan
from pivot_report.utils.subprocesses import CommandResult, open_file, run_rscript

logger = logging.getLogger(__name__)

SPLIT_COLUMNS = ("Plot", "X", "Y")
DEFAULT_DESTINATIONS = {METADATA: "PlotMetadata"}
# modes whose scripts call evalFormatting, summarySE, plotTable, multiplot or textplot
UTILS_MODES = frozenset({GENERAL, LANDMARKING})
TIMEOUT_RETURNCODE = 124

Runner = Callable[..., CommandResult]
Opener = Callable[[Path], Any]


@dataclass(frozen=True)
class PreparedReport:
    model: PivotModel
    settings: ReportSettings
    plan: ReportPlan
    script: str


@dataclass(frozen=True)
class ReportArtifact:
    mode: str
    script_path: Path
    output_path: Path
    success: bool
    panels: int
    plan_path: Path | None = None
    result: CommandResult | None = None


def required_columns(mode: str, config: ReportConfig) -> tuple[str, ...]:
    if mode == METADATA:
        return tuple(c for c in config.columns if c)
    return SPLIT_COLUMNS


def resolve_destination(mode: str, config: ReportConfig) -> str:
    destination = config.destination or DEFAULT_DESTINATIONS.get(mode, "")
    if not destination:
        raise OptionError(f"{mode} report requires a destination")
    return destination


def prepare(
    files: list[str | Path],
    config: ReportConfig | dict[str, Any] | str | Path | None = None,
    mode: str = "general",
) -> PreparedReport:
    """Build the pivot model and plan for ``files`` and render the R script in memory."""

    if mode not in MODES:
        raise OptionError(f"unknown report mode {mode!r}, expected one of {', '.join(MODES)}")
    cfg = resolve_report_config(config)
    model = PivotModel.from_files(files, smooth=cfg.smooth, algorithm_header=cfg.algorithm_header)
    settings = ReportSettings.derive(cfg, model, resolve_destination(mode, cfg))
    if mode in UTILS_MODES and not cfg.resolved_utils_script():
        raise OptionError(f"{mode} report needs plot_utils.R: set utils_script or {UTILS_ENV_VAR}")
    if cfg.validate_inputs:
        validate_columns(model, required_columns(mode, cfg))
    single_point = mode == DETECTION and files_have_single_point(model.files)
    plan = build_plan(mode, model, cfg, settings, single_point=single_point)
    return PreparedReport(model=model, settings=settings, plan=plan, script=render_r_script(plan))


def render_script(
    files: list[str | Path],
    config: ReportConfig | dict[str, Any] | str | Path | None = None,
    mode: str = "general",
) -> str:
    return prepare(files, config, mode).script


def _write_outputs(prepared: PreparedReport, emit_plan: bool) -> tuple[Path, Path | None]:
    basename = prepared.plan.device.basename
    script_path = Path(f"{basename}.R")
    plan_path = Path(f"{basename}.plan.json") if emit_plan else None
    try:
        script_path.parent.mkdir(parents=True, exist_ok=True)
        script_path.write_text(prepared.script, encoding="utf-8")
        if plan_path is not None:
            write_plan_json(prepared.plan, plan_path)
    except OSError as exc:
        raise OutputPathError(f"Failed to open {script_path} for writing: {exc}") from exc
    return script_path, plan_path


def assemble(
    files: list[str | Path],
    config: ReportConfig | dict[str, Any] | str | Path | None = None,
    mode: str = "general",
    *,
    runner: Runner | None = None,
    opener: Opener | None = None,
) -> ReportArtifact:
    """Write ``<basename>.R``, run it, and report whether the runtime succeeded.

    Synthesis problems raise ReportError subclasses before anything runs. A
    failing runtime only yields ``success=False``; the script stays on disk.
    """

    cfg = resolve_report_config(config)
    prepared = prepare(files, cfg, mode)
    device = prepared.plan.device
    script_path, plan_path = _write_outputs(prepared, cfg.emit_plan)
    output_path = Path(device.output_path)
    logger.info(
        "%s report: %d file(s), major=%r minor=%r -> %s",
        mode,
        len(prepared.model.files),
        prepared.model.major.header,
        prepared.model.minor.header,
        script_path,
    )

    run = runner or run_rscript
    try:
        result = run(script_path, rscript=cfg.rscript, timeout_s=cfg.timeout_s)
    except subprocess.TimeoutExpired:
        result = CommandResult(
            command=[cfg.rscript, str(script_path)],
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=f"timed out after {cfg.timeout_s}s",
        )

    if result.ok:
        logger.info("wrote %s", output_path)
        if cfg.show:
            (opener or open_file)(output_path)
    else:
        logger.warning(
            "%s exited with %d for %s: %s",
            cfg.rscript,
            result.returncode,
            script_path,
            result.stderr.strip(),
        )

    return ReportArtifact(
        mode=mode,
        script_path=script_path,
        output_path=output_path,
        success=result.ok,
        panels=len(prepared.plan.panels()),
        plan_path=plan_path,
        result=result,
    )
