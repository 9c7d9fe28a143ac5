from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

Geometry = Literal["line", "point", "bar", "box", "histogram", "tile", "text", "ecdf", "violin"]
Channel = Literal["colour", "linetype", "fill"]
LabelFormat = Literal["percent", "log10", "number", "none"]
FacetScales = Literal["fixed", "free", "free_x", "free_y"]


class Scale(BaseModel):
    title: str = ""
    log: bool = False
    labels: LabelFormat = "percent"
    breaks: list[float] | None = None
    n_breaks: int | None = 10
    limits: tuple[float, float] | None = None
    minor_breaks: bool = True
    discrete: bool = False
    show_text: bool = True
    text_angle: float | None = None
    label_values: list[float] | None = None


class Encoding(BaseModel):
    channel: Channel
    header: str
    size: int = 0
    palette: str = "Set1"
    title: str = ""
    values: list[str] = Field(default_factory=list)
    continuous: bool = False

    @property
    def legend_title(self) -> str:
        return self.title or self.header


class Facet(BaseModel):
    rows: str | None = None
    cols: str | None = None
    wrap: bool = False
    scales: FacetScales = "fixed"
    labeller: str | None = None


class ErrorBand(BaseModel):
    data: str
    stride: int = 29
    complement: bool = False
    width: float = 0.1
    alpha: float = 0.5


class Legend(BaseModel):
    visible: bool = True
    position: tuple[float, float] | None = None
    ncol: int = 1


class PanelSpec(BaseModel):
    type: Literal["panel"] = "panel"
    geometry: Geometry
    data: str
    x: str | None = "X"
    y: str | None = "Y"
    x_discrete: bool = False
    complement: bool = False
    title: str = ""
    encodings: list[Encoding] = Field(default_factory=list)
    x_scale: Scale = Field(default_factory=Scale)
    y_scale: Scale = Field(default_factory=Scale)
    facet: Facet | None = None
    error_band: ErrorBand | None = None
    legend: Legend = Field(default_factory=Legend)
    text_size: float = 12.0
    size: float | None = None
    alpha: float | None = None
    position: str | None = None
    weighted: bool = False
    label: str | None = None
    label_digits: int | None = None
    value_labels: bool = False
    jitter: bool = False
    aspect_ratio: float | None = None
    coord_flip: bool = False
    styled: bool = True
    save_as: str | None = None

    def encoding(self, channel: str) -> Encoding | None:
        for enc in self.encodings:
            if enc.channel == channel:
                return enc
        return None


class Variable(BaseModel):
    type: Literal["variable"] = "variable"
    name: str
    value: str | bool | float


class SeriesLabels(BaseModel):
    type: Literal["series_labels"] = "series_labels"
    name: str = "algs"
    data: str = "TF"
    headers: list[str] = Field(default_factory=list)


class FormatResults(BaseModel):
    """Split the combined recognition table into its named result tables."""

    type: Literal["format_results"] = "format_results"


class DataSplit(BaseModel):
    type: Literal["data_split"] = "data_split"
    column: str = "Plot"
    parts: list[str] = Field(default_factory=list)
    character_x: list[str] = Field(default_factory=list)
    ordered_x: list[str] = Field(default_factory=list)


class Aggregate(BaseModel):
    type: Literal["aggregate"] = "aggregate"
    data: str
    measure: str = "Y"
    groupvars: list[str] = Field(default_factory=list)
    confidence: float = 0.95


class MetadataTableSpec(BaseModel):
    type: Literal["metadata_table"] = "metadata_table"
    title: str


class NewPage(BaseModel):
    type: Literal["new_page"] = "new_page"


class TableSpec(BaseModel):
    type: Literal["table"] = "table"
    data: str
    title: str
    labels: list[str] = Field(default_factory=list)


class ImagePairSpec(BaseModel):
    type: Literal["image_pairs"] = "image_pairs"
    data: str
    score_label: str


class LandmarkExamplesSpec(BaseModel):
    type: Literal["landmark_examples"] = "landmark_examples"
    sample: str = "Sample"
    truth: str = "EXT"
    predicted: str = "EXP"
    box: str = "Box"
    group_header: str = ""


class ErrorTableSpec(BaseModel):
    type: Literal["error_table"] = "error_table"
    data: str = "Box"
    norm: str = "NormLength"
    group_header: str = ""
    title: str = "Landmarking Error Rates"


PlanItem = Annotated[
    Union[
        PanelSpec,
        Variable,
        SeriesLabels,
        FormatResults,
        DataSplit,
        Aggregate,
        MetadataTableSpec,
        NewPage,
        TableSpec,
        ImagePairSpec,
        LandmarkExamplesSpec,
        ErrorTableSpec,
    ],
    Field(discriminator="type"),
]


class DataFile(BaseModel):
    path: str
    tags: dict[str, str] = Field(default_factory=dict)


class Device(BaseModel):
    basename: str
    suffix: str = "pdf"
    width: int = 800
    height: int = 800

    @property
    def function(self) -> str:
        """R graphics device named by the suffix; the file keeps the suffix as given."""

        return self.suffix.lower()

    @property
    def paginated(self) -> bool:
        return self.function == "pdf"

    @property
    def output_path(self) -> str:
        return f"{self.basename}.{self.suffix}"


class ReportPlan(BaseModel):
    mode: str
    device: Device
    utils_script: str | None = None
    files: list[DataFile] = Field(default_factory=list)
    items: list[PlanItem] = Field(default_factory=list)

    def panels(self) -> list[PanelSpec]:
        return [item for item in self.items if isinstance(item, PanelSpec)]
