"""Config file loading: read, parse and schema-validate one file at a time."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from hiliner.config import ActionConfig, validation_issues
from hiliner.errors import (
    ConfigFileSystemError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigPermissionError,
    ConfigValidationError,
    ValidationIssue,
)
from hiliner.paths import ConfigSource, SourceKind

logger = logging.getLogger(__name__)

MAX_CONFIG_SIZE = 10 * 1024 * 1024
"""Config files above this many bytes are rejected."""


@dataclass(frozen=True)
class LoadedConfig:
    """A validated config together with where it came from."""

    config: ActionConfig
    source: ConfigSource
    warnings: tuple[str, ...] = ()
    dropped_ids: frozenset[str] = frozenset()
    """Ids of actions removed in lenient mode."""

    @property
    def path(self) -> Path:
        return self.source.path


def load(
    path: Path | str,
    *,
    strict: bool = True,
    kind: SourceKind = SourceKind.PROJECT,
) -> LoadedConfig | None:
    """Load one config file.

    Returns None when the file does not exist. Raises a ConfigLoadError
    subclass for every other failure. With ``strict=False`` an invalid action
    is dropped (and reported in ``warnings``) instead of failing the file.
    """
    source = ConfigSource(kind, Path(path))
    text = _read_text(source.path)
    if text is None:
        return None

    if not text.strip():
        raise ConfigParseError(f"Configuration file is empty: {source.path}", source.path)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"Invalid JSON in {source.path} at line {exc.lineno} column {exc.colno}: {exc.msg}",
            source.path,
        ) from exc

    config, warnings, dropped = parse_config(data, strict=strict, path=source.path)
    for warning in warnings:
        logger.warning("%s: %s", source.path, warning)
    logger.debug("Loaded %d action(s) from %s", len(config.actions), source.path)
    return LoadedConfig(
        config=config,
        source=source,
        warnings=tuple(warnings),
        dropped_ids=dropped,
    )


def load_source(source: ConfigSource, *, strict: bool = True) -> LoadedConfig | None:
    """Load a discovered or explicit source.

    A missing discovered source contributes nothing. A missing explicit
    source is fatal.
    """
    loaded = load(source.path, strict=strict, kind=source.kind)
    if loaded is None and not source.optional:
        raise ConfigNotFoundError(
            f"Specified config file not found: {source.path}",
            source.path,
        )
    if loaded is None:
        logger.debug("No %s config at %s", source.kind.label, source.path)
    return loaded


def load_all(sources: Iterable[ConfigSource], *, strict: bool = True) -> list[LoadedConfig]:
    """Load every source in order, skipping absent optional ones."""
    loaded: list[LoadedConfig] = []
    for source in _unique(sources):
        result = load_source(source, strict=strict)
        if result is not None:
            loaded.append(result)
    return loaded


async def load_all_async(
    sources: Iterable[ConfigSource],
    *,
    strict: bool = True,
) -> list[LoadedConfig]:
    """Like load_all, but reads the files concurrently. Order is preserved."""
    results = await asyncio.gather(
        *(asyncio.to_thread(load_source, source, strict=strict) for source in _unique(sources))
    )
    return [result for result in results if result is not None]


def parse_config(
    data: object,
    *,
    strict: bool = True,
    path: Path | str = "<memory>",
) -> tuple[ActionConfig, list[str], frozenset[str]]:
    """Validate decoded JSON.

    Returns the config, any lenient-mode warnings and the ids of the actions
    that lenient mode dropped.
    """
    try:
        return ActionConfig.model_validate(data), [], frozenset()
    except ValidationError as exc:
        by_action, top_level = _partition(exc)
        if strict or top_level or not isinstance(data, Mapping):
            raise ConfigValidationError(path, validation_issues(exc)) from exc
    return _drop_invalid_actions(data, by_action, path)


def _drop_invalid_actions(
    data: Mapping[str, object],
    by_action: dict[int, list[ValidationIssue]],
    path: Path | str,
) -> tuple[ActionConfig, list[str], frozenset[str]]:
    actions = list(data["actions"])  # type: ignore[call-overload]

    warnings = []
    dropped: set[str] = set()
    for index in sorted(by_action):
        action = actions[index]
        label = action.get("id") if isinstance(action, Mapping) else None
        if isinstance(label, str) and label:
            dropped.add(label)
        messages = "; ".join(str(issue) for issue in by_action[index])
        warnings.append(f"Dropped invalid action {label or f'#{index}'}: {messages}")

    remaining = [action for index, action in enumerate(actions) if index not in by_action]
    try:
        config = ActionConfig.model_validate({**data, "actions": remaining})
    except ValidationError as exc:
        raise ConfigValidationError(path, validation_issues(exc)) from exc
    return config, warnings, frozenset(dropped)


def _partition(
    exc: ValidationError,
) -> tuple[dict[int, list[ValidationIssue]], list[ValidationIssue]]:
    """Split issues into per-action groups and file-level issues."""
    by_action: dict[int, list[ValidationIssue]] = {}
    top_level: list[ValidationIssue] = []
    for error, issue in zip(exc.errors(), validation_issues(exc)):
        loc = tuple(error["loc"])
        if len(loc) >= 2 and loc[0] == "actions" and isinstance(loc[1], int):
            by_action.setdefault(loc[1], []).append(issue)
        else:
            top_level.append(issue)
    return by_action, top_level


def _read_text(path: Path) -> str | None:
    try:
        size = path.stat().st_size
        if size > MAX_CONFIG_SIZE:
            raise ConfigFileSystemError(
                f"Config file {path} is {size} bytes; the limit is {MAX_CONFIG_SIZE}",
                path,
            )
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except PermissionError as exc:
        raise ConfigPermissionError(f"Permission denied reading config file: {path}", path) from exc
    except UnicodeDecodeError as exc:
        raise ConfigFileSystemError(f"Config file {path} is not valid UTF-8: {exc}", path) from exc
    except OSError as exc:
        raise ConfigFileSystemError(f"Failed to read config file {path}: {exc}", path) from exc


def _unique(sources: Iterable[ConfigSource]) -> list[ConfigSource]:
    # The project directory may be the home directory; read each file once,
    # attributing it to the highest-priority kind that names it.
    chosen: dict[Path, ConfigSource] = {}
    for source in sources:
        existing = chosen.get(source.path)
        if existing is None or source.kind > existing.kind:
            chosen[source.path] = source
    return sorted(chosen.values(), key=lambda source: source.kind)
