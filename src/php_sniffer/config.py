from __future__ import annotations

import collections.abc
import dataclasses
import enum
from typing import Any, Protocol

import pydantic
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

SECTION = "phpSniffer"
LANGUAGE_ID = "php"


class TriggerMode(enum.StrEnum):
    ON_SAVE = "onSave"
    ON_TYPE = "onType"


@dataclasses.dataclass(frozen=True)
class RunConfig:
    trigger_mode: TriggerMode
    debounce_delay_ms: int
    executables_folder: str
    standard: str


class SnifferSettings(BaseModel):
    """
    Settings of `phpSniffer` section as the client sends them. Aliases are the
    client keys, python names can be used as well.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    run: TriggerMode = TriggerMode.ON_SAVE
    on_type_delay: int = Field(default=250, ge=0, alias="onTypeDelay")
    # with trailing slash, absolute or relative to the first workspace folder
    executables_folder: str = Field(default="", alias="executablesFolder")
    standard: str = ""
    # used only by formatting, which is not provided by this server
    snippet_exclude_sniffs: list[str] = Field(
        default_factory=list, alias="snippetExcludeSniffs"
    )

    @classmethod
    def from_raw(cls, raw: Any) -> SnifferSettings:
        if not isinstance(raw, collections.abc.Mapping):
            if raw is not None:
                logger.warning(f"Settings of {SECTION} are not an object: {raw!r}")
            return cls()

        try:
            return cls.model_validate(dict(raw))
        except pydantic.ValidationError as error:
            invalid_keys = {
                str(err["loc"][0]) for err in error.errors() if len(err["loc"]) > 0
            }
            logger.warning(
                f"Invalid values of {SECTION} settings {sorted(invalid_keys)} are"
                f" replaced by defaults: {error}"
            )

        valid_raw = {key: value for key, value in raw.items() if key not in invalid_keys}
        try:
            return cls.model_validate(valid_raw)
        except pydantic.ValidationError as error:
            logger.error(f"Failed to read {SECTION} settings, use defaults: {error}")
            return cls()

    def run_config(self) -> RunConfig:
        return RunConfig(
            trigger_mode=self.run,
            debounce_delay_ms=self.on_type_delay,
            executables_folder=self.executables_folder,
            standard=self.standard,
        )

    def to_raw(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SettingsProvider(Protocol):
    # `scope_uri` is a document uri or None for workspace-wide settings. Settings
    # are requested on every run and are not cached by callers.
    async def get_settings(self, scope_uri: str | None = None) -> SnifferSettings: ...


def changed_keys(old_raw: dict[str, Any], new_raw: dict[str, Any]) -> frozenset[str]:
    keys = set(old_raw.keys()) | set(new_raw.keys())
    return frozenset(key for key in keys if old_raw.get(key) != new_raw.get(key))


__all__ = [
    "SECTION",
    "LANGUAGE_ID",
    "TriggerMode",
    "RunConfig",
    "SnifferSettings",
    "SettingsProvider",
    "changed_keys",
]
