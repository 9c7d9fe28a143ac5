from __future__ import annotations


class ReportError(RuntimeError):
    """Fatal report-generation failure; no partial artifact is valid."""


class EmptyInputError(ReportError):
    pass


class OptionError(ReportError, ValueError):
    pass


class SchemaError(ReportError):
    pass


class OutputPathError(ReportError):
    pass
