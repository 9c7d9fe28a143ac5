from __future__ import annotations

from dataclasses import dataclass

from pivot_report.config import ReportSettings
from pivot_report.encoding.policy import DISCRETE_SCALE, EncodingPolicy, palette_for_channel
from pivot_report.panels.options import PanelOptions
from pivot_report.pivots.model import PivotModel
from pivot_report.schemas import (
    Encoding,
    Facet,
    Geometry,
    ImagePairSpec,
    Legend,
    PanelSpec,
    Scale,
    TableSpec,
)

DEFAULT_N_BREAKS = 10
NORMALIZED_ERROR_BREAKS = [0.001, 0.01, 0.1, 1.0, 10.0]
GROUND_TRUTH_COLOURS = ["blue", "red"]

SUMMARY_TABLES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    (
        "TF",
        "Table of True Accept Rates at various False Accept Rates",
        ("FAR = 1e-06", "FAR = 1e-05", "FAR = 1e-04", "FAR = 1e-03", "FAR = 1e-02", "FAR = 1e-01"),
    ),
    (
        "FT",
        "Table of False Accept Rates at various True Accept Rates",
        ("TAR = 0.40", "TAR = 0.50", "TAR = 0.65", "TAR = 0.75", "TAR = 0.85", "TAR = 0.95"),
    ),
    (
        "CT",
        "Table of retrieval rate at various ranks",
        ("Rank 1", "Rank 5", "Rank 10", "Rank 20", "Rank 50", "Rank 100"),
    ),
    ("TS", "Template Size by Algorithm", ("Template Size (bytes):",)),
)


def _axis(
    title: str,
    log: bool,
    labels: str | None,
    breaks: tuple[float, ...] | None,
    limits: tuple[float, float] | None,
    label_values: tuple[float, ...] | None = None,
) -> Scale:
    return Scale(
        title=title,
        log=log,
        labels=labels or ("log10" if log else "percent"),
        label_values=list(label_values) if label_values else None,
        breaks=list(breaks) if breaks is not None else None,
        n_breaks=None if (log or breaks is not None) else DEFAULT_N_BREAKS,
        limits=limits,
    )


def _plain_axis(title: str = "", **kwargs) -> Scale:
    params = {"labels": "number", "n_breaks": None}
    params.update(kwargs)
    return Scale(title=title, **params)


@dataclass(frozen=True)
class PanelBuilder:
    model: PivotModel
    settings: ReportSettings
    policy: EncodingPolicy

    @property
    def legend(self) -> Legend:
        return Legend(ncol=self.settings.ncol)

    def build_panel(
        self,
        geometry: Geometry,
        data: str,
        complement: bool = False,
        options: PanelOptions | None = None,
    ) -> PanelSpec:
        """One series panel: colour by major, linetype by minor, optional error band."""

        opts = options or PanelOptions()
        return PanelSpec(
            geometry=geometry,
            data=data,
            complement=bool(complement),
            title=opts.title,
            encodings=self.policy.series_encodings(),
            x_scale=_axis(opts.x_title, opts.x_log, opts.x_labels, opts.x_breaks, opts.x_limits, opts.x_label_values),
            y_scale=_axis(opts.y_title, opts.y_log, opts.y_labels, opts.y_breaks, opts.y_limits, opts.y_label_values),
            error_band=self.policy.error_band(data, complement=complement),
            legend=Legend(position=opts.legend_position, ncol=self.settings.ncol),
            text_size=float(opts.text_size),
            size=opts.size,
        )

    def score_histogram(self, data: str = "SD") -> PanelSpec:
        return PanelSpec(
            geometry="histogram",
            data=data,
            y=None,
            encodings=[
                Encoding(
                    channel="fill",
                    header="Y",
                    size=len(GROUND_TRUTH_COLOURS),
                    palette="manual",
                    title="Ground Truth",
                    values=list(GROUND_TRUTH_COLOURS),
                )
            ],
            x_scale=_plain_axis("Score", minor_breaks=False, text_angle=-90),
            y_scale=_plain_axis("Frequency", minor_breaks=False, show_text=False),
            facet=self.policy.facet("histogram"),
            legend=self.legend,
            alpha=0.5,
            position="identity",
            aspect_ratio=1.0,
            styled=False,
        )

    def comparison(self, data: str = "BC") -> PanelSpec:
        """Accept rates per series at fixed false accept rates; boxes when smoothing."""

        major, minor = self.model.major, self.model.minor
        if major.smooth:
            x = minor.header or self.model.algorithm_header
        else:
            x = major.header
        smoothed = self.model.smoothed
        fill = self.policy.fill()
        if minor.size > 1:
            facet = Facet(rows=minor.header, cols="X")
        else:
            facet = Facet(cols="X", labeller="far_labeller")
        return PanelSpec(
            geometry="box" if smoothed else "bar",
            data=data,
            x=x,
            y="Y" if smoothed else None,
            x_discrete=True,
            encodings=[fill] if fill is not None else [],
            x_scale=_plain_axis("False Accept Rate", discrete=True, labels="none", text_angle=-90),
            y_scale=Scale(title="True Accept Rate", labels="percent", n_breaks=None),
            facet=facet,
            legend=Legend(visible=False, ncol=self.settings.ncol),
            position=None if smoothed else "dodge",
            weighted=not smoothed,
            value_labels=not smoothed,
            styled=False,
        )

    def error_rate(self, data: str = "ERR") -> PanelSpec:
        """False accept/reject rates against score threshold, one facet per panel pivot."""

        series, panels = self.policy.split_pivots()
        encodings = [Encoding(channel="linetype", header="Error", palette=DISCRETE_SCALE)]
        colour = self.policy.colour(series)
        if colour is not None:
            encodings.append(colour)
        facet = Facet(cols=panels.header, wrap=True, scales="free_x") if panels.size > 1 else None
        return PanelSpec(
            geometry="line",
            data=data,
            encodings=encodings,
            x_scale=_plain_axis("Score"),
            y_scale=Scale(title="Error Rate", log=True, labels="percent", n_breaks=None),
            facet=facet,
            legend=self.legend,
            aspect_ratio=1.0,
            styled=False,
        )

    def overlap_histogram(self, data: str = "Overlap") -> PanelSpec:
        return PanelSpec(
            geometry="histogram",
            data=data,
            y=None,
            x_scale=_plain_axis("Overlap", minor_breaks=False, text_angle=-90),
            y_scale=_plain_axis("Frequency", minor_breaks=False, show_text=False),
            facet=self.policy.facet("histogram", flip=False),
            legend=self.legend,
            position="identity",
            aspect_ratio=1.0,
            styled=False,
        )

    def average_overlap(self, geometry: Geometry, data: str = "AverageOverlap") -> PanelSpec:
        """Overlap per (minor, major) cell, as printed values or as a heat map."""

        major, minor = self.model.major, self.model.minor
        x = minor.header if minor.size > 1 else None
        y = major.header if major.size > 1 else None
        encodings: list[Encoding] = []
        if geometry == "tile":
            encodings.append(Encoding(channel="fill", header="X", title="Average Overlap", continuous=True))
        return PanelSpec(
            geometry=geometry,
            data=data,
            x=x,
            y=y,
            x_discrete=True,
            title="Average Overlap" if geometry == "text" else "",
            encodings=encodings,
            x_scale=_plain_axis(x or "", discrete=True, labels="none"),
            y_scale=_plain_axis(y or "", discrete=True, labels="none"),
            legend=self.legend,
            label="X" if geometry == "text" else None,
            label_digits=3 if geometry == "text" else None,
            styled=False,
        )

    def landmark_ecdf(self, data: str = "Box") -> PanelSpec:
        return PanelSpec(
            geometry="ecdf",
            data=data,
            x="Y",
            y=None,
            encodings=self.policy.series_encodings(),
            x_scale=Scale(title="Normalized Error", log=True, labels="number", breaks=NORMALIZED_ERROR_BREAKS, n_breaks=None),
            y_scale=Scale(title="Cumulative Density", labels="percent", n_breaks=None),
            legend=self.legend,
            styled=False,
        )

    def landmark_distribution(self, geometry: Geometry, data: str = "Box") -> PanelSpec:
        """Per-landmark error spread; boxes carry jittered raw points."""

        return PanelSpec(
            geometry=geometry,
            data=data,
            x_discrete=True,
            encodings=self.policy.series_encodings(),
            x_scale=_plain_axis("Landmark", discrete=True, labels="none"),
            y_scale=Scale(title="Normalized Error", log=True, labels="number", breaks=NORMALIZED_ERROR_BREAKS, n_breaks=None),
            legend=self.legend,
            alpha=0.5,
            jitter=geometry == "box",
            styled=False,
        )

    def metadata_violin(self, column: str, data: str = "data") -> PanelSpec:
        major = self.model.major
        return PanelSpec(
            geometry="violin",
            data=data,
            x=major.header,
            y=column,
            x_discrete=True,
            encodings=[palette_for_channel("fill", major.header, major.size)],
            x_scale=_plain_axis(major.header, discrete=True, labels="none"),
            y_scale=_plain_axis(column),
            legend=self.legend,
            coord_flip=True,
            styled=False,
            save_as=f"{column}.pdf",
        )

    def summary_tables(self) -> list[TableSpec]:
        return [TableSpec(data=data, title=title, labels=list(labels)) for data, title, labels in SUMMARY_TABLES]

    def image_pairs(self) -> list[ImagePairSpec]:
        return [ImagePairSpec(data="IM", score_label="Impostor"), ImagePairSpec(data="GM", score_label="Genuine")]
