from __future__ import annotations

from dataclasses import dataclass

from pivot_report.pivots.model import Pivot, PivotModel
from pivot_report.schemas import Encoding, ErrorBand, Facet

SMALL_PALETTE = "Set1"
MEDIUM_PALETTE = "Paired"
LARGE_PALETTE = "Set3"
DISCRETE_SCALE = "discrete"

# Curated palettes stay distinguishable (and print/colorblind safe) only up to these counts.
SMALL_PALETTE_MAX = 9
MEDIUM_PALETTE_MAX = 11
LARGE_PALETTE_MAX = 12

ERROR_BAND_STRIDE = 29
CUMULATIVE_SOURCES = frozenset({"CMC"})
DISTRIBUTION_GEOMETRIES = frozenset({"histogram"})


def palette_for(count: int) -> str:
    """Pick a discrete palette for ``count`` categories."""

    count = int(count)
    if count > LARGE_PALETTE_MAX:
        return DISCRETE_SCALE
    if count > MEDIUM_PALETTE_MAX:
        return LARGE_PALETTE
    if count > SMALL_PALETTE_MAX:
        return MEDIUM_PALETTE
    return SMALL_PALETTE


def palette_for_channel(channel: str, header: str, count: int) -> Encoding:
    return Encoding(channel=channel, header=header, size=int(count), palette=palette_for(count))


@dataclass(frozen=True)
class EncodingPolicy:
    model: PivotModel
    confidence: float

    @property
    def major(self) -> Pivot:
        return self.model.major

    @property
    def minor(self) -> Pivot:
        return self.model.minor

    @property
    def error_bars(self) -> bool:
        return self.model.smoothed and self.confidence != 0

    def colour(self, pivot: Pivot | None = None) -> Encoding | None:
        pivot = self.major if pivot is None else pivot
        if pivot.size <= 1:
            return None
        return palette_for_channel("colour", pivot.header, pivot.size)

    def fill(self, pivot: Pivot | None = None) -> Encoding | None:
        pivot = self.major if pivot is None else pivot
        if pivot.size <= 1:
            return None
        return palette_for_channel("fill", pivot.header, pivot.size)

    def linetype(self, pivot: Pivot | None = None) -> Encoding | None:
        pivot = self.minor if pivot is None else pivot
        if pivot.size <= 1:
            return None
        return Encoding(channel="linetype", header=pivot.header, size=pivot.size, palette=DISCRETE_SCALE)

    def series_encodings(self) -> list[Encoding]:
        """Colour by major and linetype by minor, each only when it splits the data."""

        return [enc for enc in (self.colour(), self.linetype()) if enc is not None]

    def error_band_visible(self, data: str) -> bool:
        return self.error_bars and str(data) not in CUMULATIVE_SOURCES

    def error_band(self, data: str, complement: bool = False) -> ErrorBand | None:
        if not self.error_band_visible(data):
            return None
        return ErrorBand(data=str(data), stride=ERROR_BAND_STRIDE, complement=bool(complement))

    def facet(self, geometry: str, flip: bool | None = None) -> Facet | None:
        """Grid over both pivots when both split the data, else wrap over major.

        Distribution panels get free per-facet axes; comparison panels share them.
        """

        flip = self.model.flip if flip is None else flip
        if self.major.size <= 1:
            return None
        scales = "free" if geometry in DISTRIBUTION_GEOMETRIES else "fixed"
        if self.minor.size > 1:
            rows, cols = (self.minor.header, self.major.header) if flip else (self.major.header, self.minor.header)
            return Facet(rows=rows, cols=cols, scales=scales)
        return Facet(cols=self.major.header, wrap=True, scales=scales)

    def split_pivots(self) -> tuple[Pivot, Pivot]:
        """(series, panels) pivots for threshold curves: flip swaps which one is faceted."""

        if self.model.flip:
            return self.major, self.minor
        return self.minor, self.major
