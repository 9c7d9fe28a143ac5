from pivot_report.panels.builder import PanelBuilder
from pivot_report.panels.options import (
    DETECTION_DEFAULTS,
    GENERAL_DEFAULTS,
    PanelOptions,
    build_option_families,
)

__all__ = [
    "DETECTION_DEFAULTS",
    "GENERAL_DEFAULTS",
    "PanelBuilder",
    "PanelOptions",
    "build_option_families",
]
