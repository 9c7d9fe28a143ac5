from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pivot_report.config import ReportConfig
from pivot_report.errors import OptionError, ReportError
from pivot_report.report import MODES, assemble, render_script


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build an evaluation report from per-run result CSVs")
    parser.add_argument("files", nargs="+", help="Result CSVs; tags come from <header_dir>/<value_file>.csv")
    parser.add_argument("--mode", choices=MODES, default="general")
    parser.add_argument("--destination", default=None, help="Output path; suffix selects the device (default pdf)")
    parser.add_argument("--config", default=None, help="Optional report config yaml")
    parser.add_argument("--smooth", default=None, help="Tag header to aggregate over")
    parser.add_argument("--confidence", type=float, default=None, help="Confidence interval percentage (0-100)")
    parser.add_argument("--ncol", type=int, default=None, help="Legend columns")
    parser.add_argument("--csv", action="store_true", help="Skip the page break after the metadata table")
    parser.add_argument("--no-metadata", action="store_true")
    parser.add_argument("--show", action="store_true", help="Open the artifact after a successful run")
    parser.add_argument(
        "--option",
        action="append",
        default=[],
        help="Panel option as family:key=value, e.g. roc:xLog=false (repeatable)",
    )
    parser.add_argument("--columns", default=None, help="Metadata columns separated by ';'")
    parser.add_argument("--algorithm-header", default=None)
    parser.add_argument("--rscript", default=None)
    parser.add_argument("--utils-script", default=None, help="Path of plot_utils.R sourced by the generated script")
    parser.add_argument("--timeout-s", type=float, default=None)
    parser.add_argument("--emit-plan", action="store_true", help="Also write <basename>.plan.json")
    parser.add_argument("--no-validate", action="store_true", help="Skip CSV header checks")
    parser.add_argument("--dry-run", action="store_true", help="Print the generated R script and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def _parse_option(text: str) -> tuple[str, str]:
    family, sep, option = str(text).partition(":")
    if not sep or not family.strip() or not option.strip():
        raise OptionError(f"malformed --option {text!r}, expected family:key=value")
    return family.strip(), option.strip()


def build_config(args: argparse.Namespace) -> ReportConfig:
    payload: dict[str, Any] = {}
    if args.config:
        payload = ReportConfig.from_yaml(Path(args.config)).to_dict()

    overrides = {
        "destination": args.destination,
        "smooth": args.smooth,
        "confidence": args.confidence,
        "ncol": args.ncol,
        "columns": args.columns,
        "algorithm_header": args.algorithm_header,
        "rscript": args.rscript,
        "utils_script": args.utils_script,
        "timeout_s": args.timeout_s,
    }
    payload.update({k: v for k, v in overrides.items() if v is not None})
    if args.csv:
        payload["csv"] = True
    if args.no_metadata:
        payload["metadata"] = False
    if args.show:
        payload["show"] = True
    if args.emit_plan:
        payload["emit_plan"] = True
    if args.no_validate:
        payload["validate_inputs"] = False

    options: dict[str, list[str]] = {k: list(v) for k, v in dict(payload.get("options") or {}).items()}
    for text in args.option:
        family, option = _parse_option(text)
        options.setdefault(family, []).append(option)
    payload["options"] = options
    return ReportConfig.from_dict(payload)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        cfg = build_config(args)
        if args.dry_run:
            sys.stdout.write(render_script(args.files, cfg, args.mode))
            return 0
        artifact = assemble(args.files, cfg, args.mode)
    except ReportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print(f"mode={artifact.mode}")
    print(f"panels={artifact.panels}")
    print(f"script={artifact.script_path}")
    if artifact.plan_path is not None:
        print(f"plan={artifact.plan_path}")
    print(f"output={artifact.output_path}")
    print(f"success={artifact.success}")
    return 0 if artifact.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
