from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterator

from pivot_report.errors import EmptyInputError
from pivot_report.pivots.extractor import TagSchema, extract_file_tags

DEFAULT_ALGORITHM_HEADER = "Algorithm"


@dataclass(frozen=True)
class PivotCandidate:
    index: int
    header: str
    values: frozenset[str] = field(default_factory=frozenset)

    @property
    def size(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Pivot:
    index: int = -1
    size: int = 0
    header: str = ""
    smooth: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.header

    @property
    def encoded(self) -> bool:
        return self.size > 1


def normalize_files(files: list[str | Path]) -> list[str]:
    """De-duplicate and lexicographically sort input paths."""

    return sorted({str(f) for f in files})


def rank_candidates(candidates: list[PivotCandidate]) -> tuple[Pivot, Pivot]:
    """Return (major, minor) by distinct-value count; ties keep the lower tag index."""

    major = Pivot()
    minor = Pivot()
    for cand in candidates:
        if cand.size > major.size:
            minor = major
            major = Pivot(index=cand.index, size=cand.size, header=cand.header)
        elif cand.size > minor.size:
            minor = Pivot(index=cand.index, size=cand.size, header=cand.header)
    return major, minor


def apply_smoothing(major: Pivot, minor: Pivot, smooth: str) -> tuple[Pivot, Pivot]:
    """Collapse the smoothed dimension to size 1, then restore major.size >= minor.size."""

    smooth = str(smooth or "")
    if smooth and major.header == smooth and major.size > 1:
        major = replace(major, smooth=True, size=1)
    if smooth and minor.header == smooth and minor.size > 1:
        minor = replace(minor, smooth=True, size=1)
    if major.size < minor.size:
        major, minor = minor, major
    return major, minor


@dataclass(frozen=True)
class PivotModel:
    files: tuple[str, ...]
    schema: TagSchema
    candidates: tuple[PivotCandidate, ...]
    major: Pivot
    minor: Pivot
    algorithm_header: str = DEFAULT_ALGORITHM_HEADER

    @classmethod
    def from_files(
        cls,
        files: list[str | Path],
        *,
        smooth: str = "",
        algorithm_header: str = DEFAULT_ALGORITHM_HEADER,
    ) -> "PivotModel":
        ordered = normalize_files(files)
        if not ordered:
            raise EmptyInputError("Empty file list.")

        schema = extract_file_tags(ordered)
        values: list[set[str]] = [set() for _ in schema.headers]
        for item in schema.files:
            for i, tag in enumerate(item.values):
                values[i].add(tag)
        candidates = tuple(
            PivotCandidate(index=i, header=header, values=frozenset(values[i]))
            for i, header in enumerate(schema.headers)
        )

        major, minor = rank_candidates(list(candidates))
        major, minor = apply_smoothing(major, minor, smooth)
        return cls(
            files=tuple(ordered),
            schema=schema,
            candidates=candidates,
            major=major,
            minor=minor,
            algorithm_header=str(algorithm_header),
        )

    @property
    def headers(self) -> tuple[str, ...]:
        return self.schema.headers

    @property
    def smoothed(self) -> bool:
        return self.major.smooth or self.minor.smooth

    @property
    def flip(self) -> bool:
        return self.minor.header == self.algorithm_header

    @property
    def group_header(self) -> str:
        """Dimension that names a series when only one can be shown."""

        if self.major.size > 1:
            return self.major.header
        if not self.minor.is_empty:
            return self.minor.header
        return self.major.header

    def default_ncol(self) -> int:
        if self.major.size > 1:
            return self.major.size
        if self.minor.is_empty:
            return self.major.size
        return self.minor.size

    def candidate(self, header: str) -> PivotCandidate | None:
        for cand in self.candidates:
            if cand.header == header:
                return cand
        return None

    def rows(self) -> Iterator[tuple[str, dict[str, str]]]:
        """Yield each file with the tag columns to stamp onto its rows."""

        for item in self.schema.files:
            yield item.path, dict(zip(self.schema.headers, item.values))
