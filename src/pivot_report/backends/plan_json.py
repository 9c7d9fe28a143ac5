from __future__ import annotations

import json
from pathlib import Path

from pivot_report.schemas import ReportPlan


def render_plan_json(plan: ReportPlan) -> str:
    return plan.model_dump_json(indent=2) + "\n"


def write_plan_json(plan: ReportPlan, path: str | Path) -> Path:
    out = Path(path)
    out.write_text(render_plan_json(plan), encoding="utf-8")
    return out


def load_plan_json(path: str | Path) -> ReportPlan:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return ReportPlan.model_validate(payload)
