from __future__ import annotations

import dataclasses
import enum
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from pygls import uris

if TYPE_CHECKING:
    from php_sniffer.report import Diagnostic

# document uri, the key of all per-document state
type DocumentIdentity = str


@dataclasses.dataclass(frozen=True)
class DocumentSnapshot:
    uri: DocumentIdentity
    language_id: str
    text: str
    version: int | None = None

    @property
    def is_file(self) -> bool:
        return urlparse(self.uri).scheme == "file"

    @property
    def fs_path(self) -> str | None:
        if not self.is_file:
            return None
        return uris.to_fs_path(self.uri)

    def __str__(self) -> str:
        return f'DocumentSnapshot(uri="{self.uri}", version={self.version})'


@dataclasses.dataclass(frozen=True)
class ConfigurationChangeEvent:
    # keys inside of the settings section, e.g. {"run", "onTypeDelay"}
    section: str
    changed_keys: frozenset[str]
    # section was changed, but not necessarily in workspace scope: resource scoped
    # values like settings of a single workspace folder are not in `changed_keys`
    section_changed: bool = False

    def affects_configuration(self, name: str) -> bool:
        if name == self.section:
            return self.section_changed or len(self.changed_keys) > 0

        prefix = f"{self.section}."
        if not name.startswith(prefix):
            return False
        return name.removeprefix(prefix) in self.changed_keys


class ProcessOutcome(enum.Enum):
    CANCELLED = enum.auto()
    EMPTY = enum.auto()
    OUTPUT = enum.auto()


@dataclasses.dataclass
class ProcessResult:
    outcome: ProcessOutcome
    stdout: str = ""
    stderr: str = ""
    return_code: int | None = None
    timed_out: bool = False


@dataclasses.dataclass
class ValidationCancelled: ...


@dataclasses.dataclass
class ValidationEmpty: ...


@dataclasses.dataclass
class ValidationParsed:
    diagnostics: list[Diagnostic]


@dataclasses.dataclass
class ValidationFailed:
    detail: str


type ValidationResult = (
    ValidationCancelled | ValidationEmpty | ValidationParsed | ValidationFailed
)


class ProcessSpawnFailed(Exception):
    def __init__(self, command: list[str], error: OSError) -> None:
        super().__init__()
        self.command = command
        self.error = error
        self.message = f"Failed to start '{command[0]}': {error}"

    def __str__(self) -> str:
        return self.message


class ReportParseError(Exception):
    def __init__(self, stdout: str, stderr: str, error: Exception) -> None:
        super().__init__()
        self.stdout = stdout
        self.stderr = stderr
        self.error = error

    @property
    def message(self) -> str:
        message = ""
        if self.stdout:
            message += f"{self.stdout}\n"
        if self.stderr:
            message += f"{self.stderr}\n"
        message += f"{type(self.error).__name__}: {self.error}"
        return message

    def __str__(self) -> str:
        return self.message


__all__ = [
    "DocumentIdentity",
    "DocumentSnapshot",
    "ConfigurationChangeEvent",
    "ProcessOutcome",
    "ProcessResult",
    "ValidationCancelled",
    "ValidationEmpty",
    "ValidationParsed",
    "ValidationFailed",
    "ValidationResult",
    "ProcessSpawnFailed",
    "ReportParseError",
]
