from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable

from pivot_report.errors import OptionError

LABEL_FORMATS = ("percent", "log10", "number", "none")

_KEY_ALIASES = {
    "title": "title",
    "xTitle": "x_title",
    "yTitle": "y_title",
    "xLog": "x_log",
    "yLog": "y_log",
    "xLabels": "x_labels",
    "yLabels": "y_labels",
    "xBreaks": "x_breaks",
    "yBreaks": "y_breaks",
    "xLimits": "x_limits",
    "yLimits": "y_limits",
    "legendPosition": "legend_position",
    "textSize": "text_size",
    "size": "size",
}

_NUMBER_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$")


def _parse_bool(key: str, text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in {"", "true", "1", "yes"}:
        return True
    if lowered in {"false", "0", "no"}:
        return False
    raise OptionError(f"{key}: expected true/false, got {text!r}")


def _parse_numbers(key: str, text: str) -> tuple[float, ...]:
    body = text.strip()
    if body.startswith("c(") and body.endswith(")"):
        body = body[2:-1]
    elif body.startswith("(") and body.endswith(")"):
        body = body[1:-1]
    parts = [p.strip() for p in re.split(r"[,;]", body) if p.strip()]
    if not parts or not all(_NUMBER_RE.match(p) for p in parts):
        raise OptionError(f"{key}: expected a list of numbers, got {text!r}")
    return tuple(float(p) for p in parts)


def _parse_pair(key: str, text: str) -> tuple[float, float]:
    values = _parse_numbers(key, text)
    if len(values) != 2:
        raise OptionError(f"{key}: expected two numbers, got {text!r}")
    return values[0], values[1]


def _parse_float(key: str, text: str) -> float:
    if not _NUMBER_RE.match(text.strip()):
        raise OptionError(f"{key}: expected a number, got {text!r}")
    return float(text)


@dataclass(frozen=True)
class PanelOptions:
    title: str = ""
    x_title: str = ""
    y_title: str = ""
    x_log: bool = False
    y_log: bool = False
    x_labels: str | None = None
    y_labels: str | None = None
    x_label_values: tuple[float, ...] | None = None
    y_label_values: tuple[float, ...] | None = None
    x_breaks: tuple[float, ...] | None = None
    y_breaks: tuple[float, ...] | None = None
    x_limits: tuple[float, float] | None = None
    y_limits: tuple[float, float] | None = None
    legend_position: tuple[float, float] | None = None
    text_size: float = 12.0
    size: float | None = None

    def with_option(self, option: str) -> "PanelOptions":
        """Apply one ``key=value`` override; a bare boolean key means true."""

        key, sep, value = str(option).partition("=")
        key = key.strip()
        if "=" in value:
            raise OptionError(f"malformed option {option!r}: too many '='")
        name = _KEY_ALIASES.get(key, key)
        if name not in {f.name for f in fields(self)}:
            raise OptionError(f"unknown panel option {key!r}")
        if not sep and name not in {"x_log", "y_log"}:
            raise OptionError(f"option {key!r} requires a value")
        coerced = self._coerce(name, value)
        if name in {"x_labels", "y_labels"}:
            # a number list labels the breaks literally
            values = coerced if isinstance(coerced, tuple) else None
            return replace(self, **{name: "number" if values else coerced, f"{name[0]}_label_values": values})
        return replace(self, **{name: coerced})

    def with_overrides(self, options: Iterable[str]) -> "PanelOptions":
        out = self
        for option in options:
            out = out.with_option(option)
        return out

    @staticmethod
    def _coerce(name: str, value: str) -> Any:
        text = str(value).strip()
        if name in {"x_log", "y_log"}:
            return _parse_bool(name, text)
        if name in {"x_labels", "y_labels"}:
            if text in LABEL_FORMATS:
                return text
            return _parse_numbers(name, text)
        if name in {"x_breaks", "y_breaks", "x_label_values", "y_label_values"}:
            return _parse_numbers(name, text)
        if name in {"x_limits", "y_limits", "legend_position"}:
            return _parse_pair(name, text)
        if name in {"text_size", "size"}:
            return _parse_float(name, text)
        return text


GENERAL_DEFAULTS: dict[str, PanelOptions] = {
    "roc": PanelOptions(x_title="False Accept Rate", y_title="True Accept Rate", x_log=True),
    "det": PanelOptions(x_title="False Accept Rate", y_title="False Reject Rate", x_log=True, y_log=True),
    "iet": PanelOptions(
        x_title="False Positive Identification Rate (FPIR)",
        y_title="False Negative Identification Rate (FNIR)",
        x_log=True,
        y_log=True,
    ),
    "cmc": PanelOptions(
        x_title="Rank",
        y_title="Retrieval Rate",
        x_log=True,
        size=1.0,
        x_labels="number",
        x_label_values=(1.0, 5.0, 10.0, 50.0, 100.0),
        x_breaks=(1.0, 5.0, 10.0, 50.0, 100.0),
    ),
}

DETECTION_DEFAULTS: dict[str, PanelOptions] = {
    "roc": PanelOptions(x_title="False Accepts Per Image", y_title="True Accept Rate", x_log=True),
    "pr": PanelOptions(x_title="False Accept Rate", y_title="False Reject Rate", x_log=True, y_log=True),
}


def build_option_families(
    defaults: dict[str, PanelOptions],
    overrides: dict[str, list[str]] | None = None,
) -> dict[str, PanelOptions]:
    """Defaults plus per-family overrides; families the mode does not draw are ignored."""

    overrides = dict(overrides or {})
    return {family: opts.with_overrides(overrides.get(family, [])) for family, opts in defaults.items()}
