from __future__ import annotations

import hashlib
import json
import os
import warnings
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from pivot_report.errors import OptionError
from pivot_report.pivots.model import DEFAULT_ALGORITHM_HEADER, PivotModel

PRODUCT_NAME = "pivot-report"
PRODUCT_VERSION = "0.1.0"

UTILS_ENV_VAR = "PIVOT_REPORT_PLOT_UTILS"
OPTION_FAMILIES = ("roc", "det", "iet", "cmc", "pr")
DEFAULT_SUFFIX = "pdf"


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"true", "1", "yes", "on", ""}:
        return True
    if text in {"false", "0", "no", "off"}:
        return False
    raise OptionError(f"{name}: expected a boolean, got {value!r}")


def _to_float(name: str, value: Any) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise OptionError(f"{name}: expected a number, got {value!r}") from exc
    if out != out:
        raise OptionError(f"{name}: expected a number, got NaN")
    return out


def _to_int(name: str, value: Any) -> int:
    number = _to_float(name, value)
    if number != int(number):
        raise OptionError(f"{name}: expected an integer, got {value!r}")
    return int(number)


def _family_key(key: str) -> str:
    name = str(key).strip()
    if name.endswith("Options"):
        name = name[: -len("Options")]
    return name.lower()


def _normalize_options(payload: Any) -> dict[str, list[str]]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise OptionError(f"options: expected a mapping of family -> list, got {type(payload).__name__}")
    out: dict[str, list[str]] = {}
    for key, raw in payload.items():
        family = _family_key(key)
        if family not in OPTION_FAMILIES:
            raise OptionError(f"unknown option family {key!r}, expected one of {', '.join(OPTION_FAMILIES)}")
        if raw is None:
            items: list[str] = []
        elif isinstance(raw, str):
            items = [raw]
        elif isinstance(raw, dict):
            items = [f"{k}={v}" for k, v in raw.items()]
        else:
            items = [str(x) for x in raw]
        cleaned = [str(item).strip() for item in items if str(item).strip()]
        if cleaned:
            out.setdefault(family, []).extend(cleaned)
    return out


@dataclass
class ReportConfig:
    destination: str = ""
    smooth: str = ""
    confidence: float = 95.0
    ncol: int | None = None
    csv: bool = False
    metadata: bool = True
    show: bool = False
    options: dict[str, list[str]] = field(default_factory=dict)
    columns: list[str] = field(default_factory=list)
    algorithm_header: str = DEFAULT_ALGORITHM_HEADER
    utils_script: str | None = None
    rscript: str = "Rscript"
    timeout_s: float | None = None
    emit_plan: bool = False
    validate_inputs: bool = True

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "ReportConfig":
        data = dict(payload or {})
        valid = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in valid)
        if unknown:
            warnings.warn(f"ReportConfig ignores unknown key(s): {', '.join(unknown)}", RuntimeWarning, stacklevel=2)

        ncol = data.get("ncol")
        timeout = data.get("timeout_s")
        columns = data.get("columns") or []
        if isinstance(columns, str):
            columns = [c for c in columns.split(";") if c.strip()]
        cfg = cls(
            destination=str(data.get("destination", "") or ""),
            smooth=str(data.get("smooth", "") or ""),
            confidence=_to_float("confidence", data.get("confidence", 95.0)),
            ncol=None if ncol is None else _to_int("ncol", ncol),
            csv=_to_bool("csv", data.get("csv", False)),
            metadata=_to_bool("metadata", data.get("metadata", True)),
            show=_to_bool("show", data.get("show", False)),
            options=_normalize_options(data.get("options")),
            columns=[str(c).strip() for c in columns],
            algorithm_header=str(data.get("algorithm_header", DEFAULT_ALGORITHM_HEADER) or DEFAULT_ALGORITHM_HEADER),
            utils_script=str(data["utils_script"]) if data.get("utils_script") else None,
            rscript=str(data.get("rscript", "Rscript") or "Rscript"),
            timeout_s=None if timeout is None else _to_float("timeout_s", timeout),
            emit_plan=_to_bool("emit_plan", data.get("emit_plan", False)),
            validate_inputs=_to_bool("validate_inputs", data.get("validate_inputs", True)),
        )
        return cfg.validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ReportConfig":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"report config not found: {p}")
        loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise OptionError(f"{p}: expected a mapping at top level")
        return cls.from_dict(loaded)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_yaml(self, path: str | Path) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True), encoding="utf-8")
        return out

    def stable_hash(self) -> str:
        raw = json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:12]

    def validate(self) -> "ReportConfig":
        if not 0.0 <= float(self.confidence) <= 100.0:
            raise OptionError(f"confidence must be within [0, 100], got {self.confidence}")
        if self.ncol is not None and int(self.ncol) < 1:
            raise OptionError(f"ncol must be >= 1, got {self.ncol}")
        if self.timeout_s is not None and float(self.timeout_s) <= 0:
            raise OptionError(f"timeout_s must be positive, got {self.timeout_s}")
        for family in self.options:
            if family not in OPTION_FAMILIES:
                raise OptionError(f"unknown option family {family!r}")
        return self

    def resolved_utils_script(self) -> str | None:
        if self.utils_script:
            return self.utils_script
        env_value = os.environ.get(UTILS_ENV_VAR, "").strip()
        return env_value or None


def split_destination(destination: str | Path) -> tuple[str, str]:
    """Return (basename, suffix) of an output path; suffix defaults to pdf."""

    p = Path(destination)
    suffix = p.suffix[1:] if p.suffix else DEFAULT_SUFFIX
    basename = (p.parent / p.stem).as_posix() if p.suffix else p.as_posix()
    return basename, suffix


@dataclass(frozen=True)
class ReportSettings:
    basename: str
    suffix: str
    confidence: float
    ncol: int
    flip: bool
    csv: bool = False
    metadata: bool = True

    @classmethod
    def derive(cls, config: ReportConfig, model: PivotModel, destination: str | None = None) -> "ReportSettings":
        basename, suffix = split_destination(destination if destination is not None else config.destination)
        return cls(
            basename=basename,
            suffix=suffix,
            confidence=float(config.confidence) / 100.0,
            ncol=int(config.ncol) if config.ncol is not None else model.default_ncol(),
            flip=model.flip,
            csv=bool(config.csv),
            metadata=bool(config.metadata),
        )


def resolve_report_config(cfg: ReportConfig | dict[str, Any] | str | Path | None) -> ReportConfig:
    if cfg is None:
        return ReportConfig()
    if isinstance(cfg, ReportConfig):
        return cfg.validate()
    if isinstance(cfg, dict):
        return ReportConfig.from_dict(cfg)
    if isinstance(cfg, (str, Path)):
        return ReportConfig.from_yaml(cfg)
    raise TypeError("Unsupported report config type")
