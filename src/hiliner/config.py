"""Action configuration schema - Pydantic v2 based.

These models mirror the on-disk JSON format. Field names are snake_case in
Python and camelCase on disk.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from hiliner.errors import ValidationIssue

KEY_PATTERN = r"^(?:(?:ctrl|alt|shift|meta)\+)*(?:\S| |[a-z][a-z0-9]+)$"
"""A single key token: one character, a named key (``arrowup``), optionally with modifiers."""

ACTION_ID_PATTERN = r"^[A-Za-z0-9_-]+$"
VERSION_PATTERN = r"^\d+\.\d+\.\d+$"
ENV_VAR_PATTERN = r"^[A-Z_][A-Z0-9_]*$"

KeyToken = Annotated[str, Field(pattern=KEY_PATTERN)]
ActionId = Annotated[str, Field(pattern=ACTION_ID_PATTERN)]
EnvVarName = Annotated[str, Field(pattern=ENV_VAR_PATTERN)]

Shell = Literal["bash", "sh", "zsh", "fish", "cmd", "powershell"]
Category = Literal["navigation", "selection", "editing", "file", "view", "search", "custom"]
Mode = Literal["interactive", "static", "any"]


class BuiltinOperation(StrEnum):
    """Native operations a ``builtin`` command may invoke."""

    QUIT = "quit"
    TOGGLE_SELECTION = "toggleSelection"
    SELECT_ALL = "selectAll"
    CLEAR_SELECTION = "clearSelection"
    SCROLL_UP = "scrollUp"
    SCROLL_DOWN = "scrollDown"
    GO_TO_START = "goToStart"
    GO_TO_END = "goToEnd"
    PAGE_UP = "pageUp"
    PAGE_DOWN = "pageDown"
    COPY_SELECTION = "copySelection"
    SAVE_TO_FILE = "saveToFile"
    TOGGLE_LINE_NUMBERS = "toggleLineNumbers"
    CHANGE_THEME = "changeTheme"
    SHOW_HELP = "showHelp"
    RELOAD = "reload"


class _Model(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- Structured commands ---


class BuiltinCommand(_Model):
    type: Literal["builtin"]
    builtin: BuiltinOperation


class _ProcessCommand(_Model):
    command: Annotated[str, Field(min_length=1)]
    args: tuple[str, ...] = ()
    timeout: Annotated[int, Field(gt=0)] | None = None
    """Timeout in milliseconds for this command."""
    environment: dict[str, str] = Field(default_factory=dict)
    working_directory: str | None = None
    on_success: str | None = None
    on_failure: str | None = None
    capture_output: bool | None = None
    silent: bool | None = None


class ExternalCommand(_ProcessCommand):
    type: Literal["external"]


class ScriptCommand(_ProcessCommand):
    type: Literal["script"]


class SequenceCommand(_Model):
    type: Literal["sequence"]
    sequence: Annotated[tuple[StructuredCommand, ...], Field(min_length=1)]


StructuredCommand = Annotated[
    Union[BuiltinCommand, ExternalCommand, ScriptCommand, SequenceCommand],
    Field(discriminator="type"),
]

SequenceCommand.model_rebuild()


# --- Actions ---


class LineCountCondition(_Model):
    min: Annotated[int, Field(ge=0)] | None = None
    max: Annotated[int, Field(ge=0)] | None = None

    @model_validator(mode="after")
    def min_not_above_max(self) -> LineCountCondition:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"lineCount.min ({self.min}) is greater than lineCount.max ({self.max})")
        return self


class WhenConditions(_Model):
    file_types: tuple[str, ...] | None = None
    has_selection: bool | None = None
    line_count: LineCountCondition | None = None
    mode: Mode | None = None


class ActionDefinition(_Model):
    id: ActionId
    name: str | None = None
    description: str
    key: KeyToken
    alternative_keys: tuple[KeyToken, ...] = ()
    script: Union[Annotated[str, Field(min_length=1)], StructuredCommand]
    when: WhenConditions | None = None
    category: Category | None = None
    priority: int | None = None
    dangerous: bool | None = None
    confirm_prompt: str | None = None
    enabled: bool | None = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be empty")
        return v

    @property
    def effective_keys(self) -> tuple[str, ...]:
        """Primary key followed by alternative keys, without duplicates."""
        return tuple(dict.fromkeys((self.key, *self.alternative_keys)))

    @property
    def is_enabled(self) -> bool:
        return self.enabled is not False


# --- Top level ---


class ConfigMetadata(_Model):
    name: str | None = None
    description: str | None = None
    author: str | None = None
    created: str | None = None
    modified: str | None = None


class EnvironmentConfig(_Model):
    variables: dict[EnvVarName, str] = Field(default_factory=dict)
    timeout: Annotated[int, Field(gt=0)] | None = None
    """Default timeout for external commands, in milliseconds."""
    shell: Shell | None = None


class ActionConfig(_Model):
    schema_: str | None = Field(default=None, alias="$schema")
    version: Annotated[str, Field(pattern=VERSION_PATTERN)] | None = None
    metadata: ConfigMetadata | None = None
    actions: tuple[ActionDefinition, ...]
    key_bindings: dict[KeyToken, ActionId] = Field(default_factory=dict)
    environment: EnvironmentConfig | None = None

    @classmethod
    def empty(cls) -> ActionConfig:
        return cls(actions=())

    def to_json_dict(self) -> dict[str, object]:
        """Dump in on-disk form (camelCase, unset fields omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def format_location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a JSON pointer, e.g. ``/actions/0/key``."""
    if not loc:
        return "/"
    return "/" + "/".join(str(part) for part in loc)


def validation_issues(exc: ValidationError) -> list[ValidationIssue]:
    """Flatten a pydantic ValidationError into location/message pairs."""
    return [
        ValidationIssue(location=format_location(tuple(error["loc"])), message=error["msg"])
        for error in exc.errors()
    ]
