"""Error taxonomy for configuration loading and registry construction."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any


class ConfigErrorType(StrEnum):
    """Kinds of failure reported while loading a single config file."""

    FILE_NOT_FOUND = "file_not_found"
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
    PERMISSION_ERROR = "permission_error"
    FILE_SYSTEM_ERROR = "file_system_error"


class ActionRegistryErrorType(StrEnum):
    """Kinds of failure reported while building an ActionRegistry."""

    KEY_BINDING_CONFLICT = "KEY_BINDING_CONFLICT"
    CRITICAL_BUILTIN_OVERRIDE = "CRITICAL_BUILTIN_OVERRIDE"
    INVALID_ACTION_DEFINITION = "INVALID_ACTION_DEFINITION"
    DUPLICATE_ACTION_ID = "DUPLICATE_ACTION_ID"
    UNKNOWN_ACTION_REFERENCE = "UNKNOWN_ACTION_REFERENCE"
    MULTIPLE_ERRORS = "MULTIPLE_ERRORS"


@dataclass(frozen=True)
class ValidationIssue:
    """One schema violation: a JSON-pointer-like location and a message."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"[{self.location}] {self.message}"


class HilinerError(Exception):
    """Base class for all hiliner errors."""


class ConfigLoadError(HilinerError):
    """Raised when a config file cannot be turned into a validated config."""

    type: ConfigErrorType = ConfigErrorType.FILE_SYSTEM_ERROR

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path)


class ConfigNotFoundError(ConfigLoadError):
    type = ConfigErrorType.FILE_NOT_FOUND


class ConfigParseError(ConfigLoadError):
    type = ConfigErrorType.PARSE_ERROR


class ConfigPermissionError(ConfigLoadError):
    type = ConfigErrorType.PERMISSION_ERROR


class ConfigFileSystemError(ConfigLoadError):
    type = ConfigErrorType.FILE_SYSTEM_ERROR


class ConfigValidationError(ConfigLoadError):
    """Schema validation failed. ``errors`` lists every violation found."""

    type = ConfigErrorType.VALIDATION_ERROR

    def __init__(self, path: Path | str, errors: list[ValidationIssue]) -> None:
        first = errors[0].message if errors else "invalid configuration"
        super().__init__(
            f"Configuration validation failed ({len(errors)} error(s)): {first}",
            path,
        )
        self.errors = list(errors)


class ActionRegistryError(HilinerError):
    """Raised when an ActionRegistry cannot be built.

    ``details["errors"]`` always holds every problem found in one pass, so a
    caller never has to fix configuration one issue at a time.
    """

    def __init__(
        self,
        type: ActionRegistryErrorType,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.type = type
        self.message = message
        self.details: dict[str, Any] = details or {}

    @property
    def errors(self) -> list[ActionRegistryError]:
        return list(self.details.get("errors", []))

    @property
    def conflicts(self) -> list[str]:
        return list(self.details.get("conflicts", []))

    @classmethod
    def aggregate(cls, problems: list[ActionRegistryError]) -> ActionRegistryError:
        """Fold several problems into one error carrying all of them."""
        conflicts: list[str] = []
        for problem in problems:
            for key in problem.details.get("conflicts", []):
                if key not in conflicts:
                    conflicts.append(key)

        if len(problems) == 1:
            only = problems[0]
            return cls(
                only.type,
                only.message,
                {**only.details, "errors": [only], "conflicts": conflicts},
            )

        message = f"{len(problems)} problems found: " + "; ".join(p.message for p in problems)
        return cls(
            ActionRegistryErrorType.MULTIPLE_ERRORS,
            message,
            {"errors": list(problems), "conflicts": conflicts},
        )
