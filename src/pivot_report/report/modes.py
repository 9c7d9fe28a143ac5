from __future__ import annotations

from dataclasses import dataclass, replace

from pivot_report.config import PRODUCT_NAME, PRODUCT_VERSION, ReportConfig, ReportSettings
from pivot_report.encoding.policy import EncodingPolicy
from pivot_report.errors import OptionError
from pivot_report.panels.builder import PanelBuilder
from pivot_report.panels.options import DETECTION_DEFAULTS, GENERAL_DEFAULTS, build_option_families
from pivot_report.pivots.model import PivotModel
from pivot_report.schemas import (
    Aggregate,
    DataFile,
    DataSplit,
    Device,
    ErrorTableSpec,
    FormatResults,
    LandmarkExamplesSpec,
    MetadataTableSpec,
    NewPage,
    PlanItem,
    ReportPlan,
    SeriesLabels,
    Variable,
)

GENERAL = "general"
DETECTION = "detection"
LANDMARKING = "landmarking"
METADATA = "metadata"
MODES = (GENERAL, DETECTION, LANDMARKING, METADATA)

SMOOTHED_SOURCES = ("DET", "IET", "CMC", "TF", "FT", "CT")
DETECTION_PARTS = ("DiscreteROC", "ContinuousROC", "DiscretePR", "ContinuousPR", "Overlap", "AverageOverlap")
DETECTION_TYPES = ("Discrete", "Continuous")
LANDMARKING_PARTS = ("Box", "Sample", "EXT", "EXP", "NormLength")


@dataclass(frozen=True)
class ModeContext:
    model: PivotModel
    config: ReportConfig
    settings: ReportSettings
    policy: EncodingPolicy
    builder: PanelBuilder

    @classmethod
    def create(cls, model: PivotModel, config: ReportConfig, settings: ReportSettings) -> "ModeContext":
        policy = EncodingPolicy(model=model, confidence=settings.confidence)
        return cls(
            model=model,
            config=config,
            settings=settings,
            policy=policy,
            builder=PanelBuilder(model=model, settings=settings, policy=policy),
        )


def general_items(ctx: ModeContext) -> list[PlanItem]:
    model, settings, builder = ctx.model, ctx.settings, ctx.builder
    major, minor = model.major, model.minor
    items: list[PlanItem] = [
        FormatResults(),
        Variable(name="basename", value=settings.basename),
        Variable(name="errBars", value=ctx.policy.error_bars),
        Variable(name="csv", value=settings.csv),
    ]
    if major.size > 1 and minor.size > 1 and not model.smoothed:
        items.append(SeriesLabels(data="TF", headers=[major.header, minor.header]))
    else:
        items.append(SeriesLabels(data="TF", headers=[model.group_header]))

    if model.smoothed:
        group = model.group_header
        for source in SMOOTHED_SOURCES:
            items.append(Aggregate(data=source, measure="Y", groupvars=[group, "X"], confidence=settings.confidence))
        items.append(Aggregate(data="ERR", measure="X", groupvars=["Error", group, "Y"], confidence=settings.confidence))

    options = build_option_families(GENERAL_DEFAULTS, ctx.config.options)

    if settings.metadata:
        items.append(MetadataTableSpec(title=f"{PRODUCT_NAME} - {PRODUCT_VERSION}"))
        if not settings.csv:
            items.append(NewPage())
        items.extend(builder.summary_tables())

    items.append(builder.build_panel("line", "DET", True, options["roc"]))
    items.append(builder.build_panel("line", "DET", False, options["det"]))
    items.append(builder.build_panel("line", "IET", False, options["iet"]))
    items.append(builder.build_panel("line", "CMC", False, options["cmc"]))
    items.append(builder.score_histogram("SD"))
    items.append(builder.comparison("BC"))
    items.append(builder.error_rate("ERR"))
    items.extend(builder.image_pairs())
    return items


def detection_items(ctx: ModeContext, single_point: bool = False) -> list[PlanItem]:
    """ROC and PR curves per detection type, then overlap summaries.

    Curves are drawn as points when some input only carries one operating point.
    """

    builder = ctx.builder
    options = build_option_families(DETECTION_DEFAULTS, ctx.config.options)
    geometry = "point" if single_point else "line"
    items: list[PlanItem] = [DataSplit(parts=list(DETECTION_PARTS))]
    for kind in DETECTION_TYPES:
        items.append(builder.build_panel(geometry, f"{kind}ROC", False, replace(options["roc"], title=kind)))
    for kind in DETECTION_TYPES:
        items.append(builder.build_panel(geometry, f"{kind}PR", False, replace(options["pr"], title=kind)))
    items.append(builder.overlap_histogram("Overlap"))
    items.append(builder.average_overlap("text", "AverageOverlap"))
    items.append(builder.average_overlap("tile", "AverageOverlap"))
    return items


def landmarking_items(ctx: ModeContext) -> list[PlanItem]:
    builder = ctx.builder
    group = ctx.model.group_header
    return [
        DataSplit(parts=list(LANDMARKING_PARTS), character_x=["Sample", "EXT", "EXP"], ordered_x=["Box"]),
        LandmarkExamplesSpec(group_header=group),
        ErrorTableSpec(group_header=group),
        builder.landmark_ecdf("Box"),
        builder.landmark_distribution("box", "Box"),
        builder.landmark_distribution("violin", "Box"),
    ]


def metadata_items(ctx: ModeContext) -> list[PlanItem]:
    columns = [c for c in ctx.config.columns if c]
    if not columns:
        raise OptionError("metadata mode requires at least one column")
    return [ctx.builder.metadata_violin(column) for column in columns]


def build_plan(
    mode: str,
    model: PivotModel,
    config: ReportConfig,
    settings: ReportSettings,
    *,
    single_point: bool = False,
) -> ReportPlan:
    """Assemble the ordered plan for ``mode``; the sequence per mode is fixed."""

    if mode not in MODES:
        raise OptionError(f"unknown report mode {mode!r}, expected one of {', '.join(MODES)}")
    ctx = ModeContext.create(model, config, settings)
    if mode == GENERAL:
        items = general_items(ctx)
    elif mode == DETECTION:
        items = detection_items(ctx, single_point=single_point)
    elif mode == LANDMARKING:
        items = landmarking_items(ctx)
    else:
        items = metadata_items(ctx)

    return ReportPlan(
        mode=mode,
        device=Device(basename=settings.basename, suffix=settings.suffix),
        utils_script=config.resolved_utils_script(),
        files=[DataFile(path=path, tags=tags) for path, tags in model.rows()],
        items=items,
    )
