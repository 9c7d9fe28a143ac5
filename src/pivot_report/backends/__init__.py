from pivot_report.backends.plan_json import load_plan_json, render_plan_json, write_plan_json
from pivot_report.backends.rscript import RScriptWriter, render_panel, render_r_script

__all__ = [
    "RScriptWriter",
    "load_plan_json",
    "render_panel",
    "render_plan_json",
    "render_r_script",
    "write_plan_json",
]
