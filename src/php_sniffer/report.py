"""
Parser of `phpcs --report=json` output.

Only the parts of the report used for diagnostics are modelled, other keys like
`totals`, `fixable` or `severity` are ignored.
"""
import enum

import pydantic
from pydantic import BaseModel, ConfigDict

from php_sniffer import domain


class RawMessageType(enum.StrEnum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class RawMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str
    # 1-based
    line: int
    column: int
    type: RawMessageType
    source: str


class RawFileReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: list[RawMessage]


class RawReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # phpcs reads from stdin, so there is normally only one key: "STDIN" or
    # the path from `--stdin-path`
    files: dict[str, RawFileReport]


class Position(BaseModel):
    # 0-based
    line: int
    character: int


class Range(BaseModel):
    start: Position
    end: Position


class DiagnosticSeverity(enum.IntEnum):
    # same values as in LSP
    ERROR = 1
    WARNING = 2


class Diagnostic(BaseModel):
    range: Range
    message: str
    severity: DiagnosticSeverity


def map_raw_message_to_diagnostic(raw_message: RawMessage) -> Diagnostic:
    position = Position(line=raw_message.line - 1, character=raw_message.column - 1)
    return Diagnostic(
        range=Range(start=position, end=position.model_copy()),
        message=f"[{raw_message.source}]\n{raw_message.message}",
        severity=(
            DiagnosticSeverity.ERROR
            if raw_message.type == RawMessageType.ERROR
            else DiagnosticSeverity.WARNING
        ),
    )


def parse(stdout: str, stderr: str = "") -> list[Diagnostic]:
    try:
        report = RawReport.model_validate_json(stdout)
    except pydantic.ValidationError as error:
        raise domain.ReportParseError(stdout=stdout, stderr=stderr, error=error)

    # order of the tool is kept
    return [
        map_raw_message_to_diagnostic(raw_message)
        for file_report in report.files.values()
        for raw_message in file_report.messages
    ]


__all__ = [
    "RawMessageType",
    "RawMessage",
    "RawFileReport",
    "RawReport",
    "Position",
    "Range",
    "DiagnosticSeverity",
    "Diagnostic",
    "parse",
]
