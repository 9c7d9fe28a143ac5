from pivot_report.pivots.extractor import FALLBACK_HEADER, FileTags, TagSchema, extract_file_tags, extract_tags
from pivot_report.pivots.model import (
    DEFAULT_ALGORITHM_HEADER,
    Pivot,
    PivotCandidate,
    PivotModel,
    apply_smoothing,
    normalize_files,
    rank_candidates,
)
from pivot_report.pivots.table import files_have_single_point, load_results, validate_columns

__all__ = [
    "DEFAULT_ALGORITHM_HEADER",
    "FALLBACK_HEADER",
    "FileTags",
    "Pivot",
    "PivotCandidate",
    "PivotModel",
    "TagSchema",
    "apply_smoothing",
    "extract_file_tags",
    "extract_tags",
    "files_have_single_point",
    "load_results",
    "normalize_files",
    "rank_candidates",
    "validate_columns",
]
