from pivot_report.report.assembler import (
    PreparedReport,
    ReportArtifact,
    assemble,
    prepare,
    render_script,
    required_columns,
)
from pivot_report.report.modes import DETECTION, GENERAL, LANDMARKING, METADATA, MODES, build_plan

__all__ = [
    "DETECTION",
    "GENERAL",
    "LANDMARKING",
    "METADATA",
    "MODES",
    "PreparedReport",
    "ReportArtifact",
    "assemble",
    "build_plan",
    "prepare",
    "render_script",
    "required_columns",
]
