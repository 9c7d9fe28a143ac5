from __future__ import annotations

import json
from typing import Callable

from pivot_report.schemas import (
    Aggregate,
    DataSplit,
    Device,
    Encoding,
    ErrorBand,
    ErrorTableSpec,
    Facet,
    FormatResults,
    ImagePairSpec,
    LandmarkExamplesSpec,
    MetadataTableSpec,
    NewPage,
    PanelSpec,
    ReportPlan,
    Scale,
    SeriesLabels,
    TableSpec,
    Variable,
)

PAGINATION_FILE = "Rplots.pdf"
CELL_GEOMETRIES = frozenset({"text", "tile"})

_LABELS = {
    "percent": "scales::percent",
    "log10": 'scales::trans_format("log10", scales::math_format())',
    "number": "waiver()",
    "none": "waiver()",
}

_IMAGE_HELPERS = """readImage <- function(path) {
\text <- tolower(tools::file_ext(path))
\tif (ext %in% c("jpg", "jpeg")) return(jpeg::readJPEG(path))
\tif (ext == "png") return(png::readPNG(path))
\tif (ext %in% c("tif", "tiff")) return(tiff::readTIFF(path))
\treturn(NULL)
}

plotImage <- function(image, title=NULL, label=NULL, ylabel=NULL) {
\tqplot(1:10, 1:10, geom="blank") + annotation_custom(grid::rasterGrob(image, interpolate=TRUE), xmin=-Inf, xmax=Inf, ymin=-Inf, ymax=Inf) + theme(axis.line=element_blank(), axis.text.x=element_blank(), axis.text.y=element_blank(), axis.ticks=element_blank(), panel.background=element_blank()) + labs(title=title, x=label, y=ylabel)
}
"""

_EXAMPLE_READER = """readExamples <- function(data) {
\texamples <- list()
\tfor (i in seq_len(nrow(data))) {
\t\timg <- readImage(data[i,1])
\t\tif (is.null(img)) next
\t\texamples[[length(examples) + 1]] <- list(file=tools::file_path_sans_ext(data[i,1]), value=data[i,2], image=img)
\t}
\treturn(examples)
}
"""


def quote(text: str) -> str:
    """R string literal; JSON escapes are a subset of R's."""

    return json.dumps(str(text), ensure_ascii=False)


def column(name: str) -> str:
    return f"`{str(name).replace('`', '')}`"


def number(value: float) -> str:
    return f"{float(value):g}"


def vector(values: list[float] | list[str], quoted: bool = False) -> str:
    parts = [quote(v) for v in values] if quoted else [number(v) for v in values]
    return f"c({', '.join(parts)})"


def _encoding_aes(enc: Encoding) -> str:
    if enc.continuous:
        return column(enc.header)
    return f"factor({column(enc.header)})"


def _encoding_scale(enc: Encoding) -> str:
    title = quote(enc.legend_title)
    if enc.continuous:
        return f"scale_{enc.channel}_continuous({title})"
    if enc.palette == "manual":
        return f"scale_{enc.channel}_manual({title}, values={vector(enc.values, quoted=True)})"
    if enc.palette == "discrete" or enc.channel == "linetype":
        return f"scale_{enc.channel}_discrete({title})"
    return f"scale_{enc.channel}_brewer({title}, palette={quote(enc.palette)})"


def _axis_scale(axis: str, scale: Scale) -> list[str]:
    if scale.discrete:
        return []
    labels = vector(scale.label_values) if scale.label_values else _LABELS[scale.labels]
    if scale.breaks is not None:
        breaks = vector(scale.breaks)
    elif scale.n_breaks:
        breaks = f"scales::pretty_breaks(n={int(scale.n_breaks)})"
    else:
        breaks = "waiver()"
    args = [f"labels={labels}", f"breaks={breaks}"]
    if not scale.minor_breaks:
        args.append("minor_breaks=NULL")
    if scale.limits is not None:
        args.append(f"limits={vector(list(scale.limits))}")
    if scale.log:
        side = "b" if axis == "x" else "l"
        return [f"scale_{axis}_log10({', '.join(args)})", f'annotation_logticks(sides="{side}")']
    return [f"scale_{axis}_continuous({', '.join(args)})"]


def _facet(facet: Facet) -> str:
    scales = "" if facet.scales == "fixed" else f", scales={quote(facet.scales)}"
    labeller = f", labeller={facet.labeller}" if facet.labeller else ""
    if facet.wrap:
        return f"facet_wrap(~ {column(facet.cols or '.')}{scales}{labeller})"
    rows = column(facet.rows) if facet.rows else "."
    cols = column(facet.cols) if facet.cols else "."
    return f"facet_grid({rows} ~ {cols}{scales}{labeller})"


def _error_band(band: ErrorBand) -> str:
    data = band.data
    if band.complement:
        bounds = "ymin=(1-lower), ymax=(1-upper)"
    else:
        bounds = "ymin=lower, ymax=upper"
    return (
        f"geom_errorbar(data={data}[seq(1, NROW({data}), by={int(band.stride)}),], "
        f"aes(x=X, {bounds}), width={number(band.width)}, alpha={number(band.alpha)})"
    )


def _geom(panel: PanelSpec) -> list[str]:
    alpha = f"alpha={number(panel.alpha)}" if panel.alpha is not None else ""
    if panel.geometry == "line":
        return [f"geom_line(linewidth={number(panel.size)})" if panel.size is not None else "geom_line()"]
    if panel.geometry == "point":
        return [f"geom_point(size={number(panel.size)})" if panel.size is not None else "geom_point()"]
    if panel.geometry == "histogram":
        args = [f"position={quote(panel.position or 'identity')}"]
        if alpha:
            args.append(alpha)
        return [f"geom_histogram({', '.join(args)})"]
    if panel.geometry == "bar":
        return [f"geom_bar(position={quote(panel.position or 'dodge')})"]
    if panel.geometry == "box":
        layers = [f"geom_boxplot({alpha})"]
        if panel.jitter:
            layers.append("geom_jitter(size=1, alpha=0.5)")
        return layers
    if panel.geometry == "violin":
        return [f"geom_violin({alpha})"]
    if panel.geometry == "ecdf":
        return ["stat_ecdf()"]
    if panel.geometry == "text":
        return ["geom_text()"]
    return ["geom_tile()"]


def _axis_aes(panel: PanelSpec, value: str | None, placeholder: str) -> str | None:
    if value is None:
        return quote(placeholder) if panel.geometry in CELL_GEOMETRIES else None
    expr = column(value)
    return f"factor({expr})" if panel.x_discrete and placeholder == "X" else expr


def _theme(panel: PanelSpec) -> str:
    parts: list[str] = []
    if panel.styled:
        size = number(panel.text_size)
        for element in ("legend.title", "legend.text", "plot.title", "axis.text", "axis.title.x", "axis.title.y"):
            parts.append(f"{element}=element_text(size={size})")
    legend = panel.legend
    if not legend.visible:
        parts.append('legend.position="none"')
    elif legend.position is not None:
        parts.append(f"legend.position={vector(list(legend.position))}")
    else:
        parts.append('legend.position="bottom"')
    if panel.styled:
        parts.append("legend.background=element_rect(fill='white')")
        parts.append('panel.grid.major=element_line(colour="gray")')
        parts.append('panel.grid.minor=element_line(colour="gray", linetype="dashed")')
    if panel.x_scale.text_angle is not None:
        parts.append(f"axis.text.x=element_text(angle={number(panel.x_scale.text_angle)}, hjust=0)")
    if not panel.y_scale.show_text:
        parts.append("axis.text.y=element_blank()")
        parts.append("axis.ticks=element_blank()")
    if panel.aspect_ratio is not None:
        parts.append(f"aspect.ratio={number(panel.aspect_ratio)}")
    return f"theme({', '.join(parts)})"


def render_panel(panel: PanelSpec) -> str:
    """Serialize one panel spec into a ggplot2 expression."""

    aes: list[str] = []
    x = _axis_aes(panel, panel.x, "X")
    if x is not None:
        aes.append(f"x={x}")
    y = _axis_aes(panel, panel.y, "Y")
    if y is not None:
        aes.append(f"y=1-{y}" if panel.complement else f"y={y}")
    for enc in panel.encodings:
        aes.append(f"{enc.channel}={_encoding_aes(enc)}")
    if panel.weighted:
        aes.append("weight=Y")
    if panel.label is not None:
        label = column(panel.label)
        if panel.label_digits is not None:
            label = f"round({label}, {int(panel.label_digits)})"
        aes.append(f"label={label}")

    layers = [f"ggplot({panel.data}, aes({', '.join(aes)}))"]
    layers.extend(_geom(panel))
    labs = []
    if panel.title:
        labs.append(f"title={quote(panel.title)}")
    labs.append(f"x={quote(panel.x_scale.title)}" if panel.x_scale.title else "x=NULL")
    labs.append(f"y={quote(panel.y_scale.title)}" if panel.y_scale.title else "y=NULL")
    layers.append(f"labs({', '.join(labs)})")
    layers.append("theme_minimal()")
    if panel.error_band is not None:
        layers.append(_error_band(panel.error_band))
    layers.extend(_encoding_scale(enc) for enc in panel.encodings)
    layers.extend(_axis_scale("x", panel.x_scale))
    layers.extend(_axis_scale("y", panel.y_scale))
    if panel.facet is not None:
        layers.append(_facet(panel.facet))
    if panel.coord_flip:
        layers.append("coord_flip()")
    if panel.value_labels:
        layers.append("geom_text(aes(label=Y, y=0.05))")
    layers.append(_theme(panel))
    if panel.encoding("colour") is not None:
        layers.append(f"guides(colour=guide_legend(ncol={int(panel.legend.ncol)}))")
    return " + ".join(layers)


class RScriptWriter:
    """Renders a ReportPlan as an R script for the ggplot2 runtime."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._helpers: set[str] = set()

    def write(self, text: str = "") -> None:
        self._lines.append(text)

    def render(self, plan: ReportPlan) -> str:
        self._lines = []
        self._helpers = set()
        self._preamble(plan)
        self._read_data(plan)
        self._open_device(plan.device)
        self.write("# Write figures")
        for item in plan.items:
            self._dispatch(item)
        self._close_device(plan.device)
        return "\n".join(self._lines) + "\n"

    def _preamble(self, plan: ReportPlan) -> None:
        if plan.utils_script:
            self.write(f"source({quote(plan.utils_script)})")
        self.write("suppressPackageStartupMessages({")
        self.write("\tlibrary(ggplot2)")
        self.write("\tlibrary(scales)")
        self.write("})")
        self.write()

    def _read_data(self, plan: ReportPlan) -> None:
        self.write("# Read CSVs")
        self.write("data <- NULL")
        for item in plan.files:
            self.write(f"tmp <- read.csv({quote(item.path)})")
            for header, value in item.tags.items():
                self.write(f"tmp[[{quote(header)}]] <- {quote(value)}")
            self.write("data <- rbind(data, tmp)")
        self.write()

    def _open_device(self, device: Device) -> None:
        self.write("# Open output device")
        if device.paginated:
            self.write(f"pdf({quote(device.output_path)})")
        else:
            self.write(f"{device.function}({quote(device.output_path)}, width={device.width}, height={device.height})")
        self.write()

    def _close_device(self, device: Device) -> None:
        self.write("dev.off()")
        if not device.paginated:
            self.write(f"unlink({quote(PAGINATION_FILE)})")

    def _dispatch(self, item: object) -> None:
        handlers: dict[type, Callable[[object], None]] = {
            PanelSpec: self._panel,
            Variable: self._variable,
            SeriesLabels: self._series_labels,
            FormatResults: self._format_results,
            DataSplit: self._data_split,
            Aggregate: self._aggregate,
            MetadataTableSpec: self._metadata_table,
            NewPage: self._new_page,
            TableSpec: self._table,
            ImagePairSpec: self._image_pairs,
            LandmarkExamplesSpec: self._landmark_examples,
            ErrorTableSpec: self._error_table,
        }
        handler = handlers.get(type(item))
        if handler is None:
            raise TypeError(f"no R serialization for plan item {type(item).__name__}")
        handler(item)

    def _panel(self, panel: PanelSpec) -> None:
        if panel.save_as:
            self.write(f"p <- {render_panel(panel)}")
            self.write("print(p)")
            self.write(f"ggsave({quote(panel.save_as)}, plot=p)")
        else:
            self.write(f"print({render_panel(panel)})")
        self.write()

    def _variable(self, item: Variable) -> None:
        value = item.value
        if isinstance(value, bool):
            literal = "TRUE" if value else "FALSE"
        elif isinstance(value, float):
            literal = number(value)
        else:
            literal = quote(value)
        self.write(f"{item.name} <- {literal}")

    def _series_labels(self, item: SeriesLabels) -> None:
        refs = [f"{item.data}${column(h)}" for h in item.headers]
        if len(refs) > 1:
            self.write(f"{item.name} <- paste({', '.join(refs)}, sep=\"_\")")
        else:
            self.write(f"{item.name} <- {refs[0]}")
        self.write(f"{item.name} <- {item.name}[!duplicated({item.name})]")
        self.write()

    def _format_results(self, item: FormatResults) -> None:
        self.write("evalFormatting()")
        self.write()

    def _data_split(self, item: DataSplit) -> None:
        self.write("# Split data into individual plots")
        for part in item.parts:
            self.write(f"{part} <- data[data${column(item.column)} == {quote(part)}, names(data) != {quote(item.column)}]")
        for part in item.ordered_x:
            self.write(f"{part}$X <- factor({part}$X, levels=unique({part}$X), ordered=TRUE)")
        for part in item.character_x:
            self.write(f"{part}$X <- as.character({part}$X)")
        self.write("rm(data)")
        self.write()

    def _aggregate(self, item: Aggregate) -> None:
        self.write(
            f"{item.data} <- summarySE({item.data}, measurevar={quote(item.measure)}, "
            f"groupvars={vector(item.groupvars, quoted=True)}, conf.interval={number(item.confidence)})"
        )

    def _metadata_table(self, item: MetadataTableSpec) -> None:
        self.write("# Write metadata table")
        self.write(f"plotMetadata(data=data, title={quote(item.title)})")

    def _new_page(self, item: NewPage) -> None:
        self.write("plot.new()")

    def _table(self, item: TableSpec) -> None:
        self.write(f"plotTable(data={item.data}, name={quote(item.title)}, labels={vector(item.labels, quoted=True)})")

    def _require_helper(self, name: str, body: str) -> None:
        if name in self._helpers:
            return
        self._helpers.add(name)
        self.write(body)

    def _image_pairs(self, item: ImagePairSpec) -> None:
        self._require_helper("images", _IMAGE_HELPERS)
        data = item.data
        label = quote(f"{item.score_label} score =")
        self.write(f"# {item.score_label} example pairs")
        self.write(f"if (exists({quote(data)}) && nrow({data}) != 0) {{")
        self.write(f"\tfor (i in seq_len(nrow({data}))) {{")
        self.write(f"\t\tscore <- {data}[i,1]")
        self.write(f"\t\tfiles <- unlist(strsplit(as.character({data}[i,2]), \"[:]\"))")
        self.write(f"\t\talg <- {data}[i,3]")
        self.write("\t\timg1 <- readImage(files[2])")
        self.write("\t\timg2 <- readImage(files[4])")
        self.write("\t\tif (is.null(img1) || is.null(img2)) next")
        self.write(
            "\t\tmultiplot(plotImage(img1, title=alg, label=files[1], ylabel=basename(files[2])), "
            f"plotImage(img2, title=paste({label}, score), label=files[3], ylabel=basename(files[4])), cols=2)"
        )
        self.write("\t}")
        self.write("}")
        self.write()

    def _landmark_examples(self, item: LandmarkExamplesSpec) -> None:
        self._require_helper("images", _IMAGE_HELPERS)
        self._require_helper("examples", _EXAMPLE_READER)
        group = column(item.group_header)
        self.write(f"sample <- readExamples({item.sample})")
        self.write("rows <- sample[[1]]$value")
        self.write(f"algs <- unique({item.box}${group})")
        self.write(
            'print(plotImage(sample[[1]]$image, title="Sample Landmarks", '
            'label=sprintf("Total Landmarks: %s", sample[[1]]$value)))'
        )
        self.write(f"if (nrow({item.truth}) != 0 && nrow({item.predicted}) != 0) {{")
        self.write("\tfor (j in seq_along(algs)) {")
        self.write(f"\t\ttruth <- readExamples({item.truth}[{item.truth}${group} == algs[[j]],])")
        self.write(f"\t\tpredicted <- readExamples({item.predicted}[{item.predicted}${group} == algs[[j]],])")
        self.write("\t\tfor (i in seq_along(predicted)) {")
        self.write(
            '\t\t\tmultiplot(plotImage(predicted[[i]]$image, title=sprintf("%s\\nPredicted Landmarks", algs[[j]]), '
            'label=sprintf("Average Landmark Error: %.3f", predicted[[i]]$value)), '
            'plotImage(truth[[i]]$image, title="Ground Truth\\nLandmarks", label=""), cols=2)'
        )
        self.write("\t\t}")
        self.write("\t}")
        self.write("}")
        self.write()

    def _error_table(self, item: ErrorTableSpec) -> None:
        group = quote(item.group_header)
        self.write("# Landmarking error table")
        self.write(f"StatBox <- summarySE({item.data}, measurevar=\"Y\", groupvars=c({group}, \"X\"))")
        self.write(f"OverallStatBox <- summarySE({item.data}, measurevar=\"Y\", groupvars=c({group}))")
        self.write(
            'mat <- matrix(paste(as.character(round(StatBox$Y, 3)), round(StatBox$ci, 3), sep=" \\u00b1 "), '
            "nrow=rows, ncol=length(algs), byrow=FALSE)"
        )
        self.write('mat <- rbind(mat, paste(as.character(round(OverallStatBox$Y, 3)), round(OverallStatBox$ci, 3), sep=" \\u00b1 "))')
        self.write(f"mat <- rbind(mat, as.character(round({item.norm}$Y, 3)))")
        self.write("colnames(mat) <- algs")
        self.write('rownames(mat) <- c(seq(0, rows-1), "Aggregate", "Average IPD")')
        self.write("ETable <- as.table(mat)")
        self.write("print(textplot(ETable))")
        self.write(f"print(title({quote(item.title)}))")
        self.write()


def render_r_script(plan: ReportPlan) -> str:
    return RScriptWriter().render(plan)
