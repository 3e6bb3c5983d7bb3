"""ActionRegistry - built-in and custom actions with flattened key lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from pydantic import TypeAdapter, ValidationError

from hiliner.actions.builtin import BUILTIN_ACTIONS
from hiliner.actions.context import AvailabilityContext
from hiliner.actions.names import CRITICAL_BUILTIN_IDS
from hiliner.config import ActionDefinition, EnvironmentConfig, validation_issues
from hiliner.errors import ActionRegistryError, ActionRegistryErrorType
from hiliner.loader import load_all, load_all_async
from hiliner.merge import ConfigConflict, MergedConfig, MergeStrategy, merge_configs
from hiliner.paths import ConfigSource, config_sources

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_SHELL = "sh"

_action_adapter: TypeAdapter[ActionDefinition] = TypeAdapter(ActionDefinition)


@dataclass(frozen=True)
class KeyBindingValidation:
    valid: bool
    error: str | None = None
    conflicts: tuple[str, ...] = ()


def detect_key_binding_conflicts(
    custom_actions: Sequence[ActionDefinition],
    builtin_actions: Sequence[ActionDefinition],
    key_bindings: Mapping[str, str] | None = None,
) -> KeyBindingValidation:
    """Check that no key is claimed by two different actions.

    Keys are case-sensitive. A built-in replaced by a custom action of the
    same id gives up its keys. An alias pointing at the action that already
    owns the key is not a conflict.
    """
    custom_ids = {action.id for action in custom_actions}
    active_builtins = [action for action in builtin_actions if action.id not in custom_ids]
    builtin_ids = {action.id for action in active_builtins}

    claims: dict[str, list[str]] = {}

    def claim(key: str, action_id: str) -> None:
        owners = claims.setdefault(key, [])
        if action_id not in owners:
            owners.append(action_id)

    for action in (*active_builtins, *custom_actions):
        for key in action.effective_keys:
            claim(key, action.id)
    for key, action_id in (key_bindings or {}).items():
        claim(key, action_id)

    details = []
    conflicts = []
    for key, owners in claims.items():
        if len(owners) < 2:
            continue
        conflicts.append(key)
        builtin_owners = [owner for owner in owners if owner in builtin_ids]
        others = [owner for owner in owners if owner not in builtin_ids]
        if builtin_owners and others:
            details.append(
                f"Key '{key}' of {', '.join(others)} conflicts with built-in action(s): "
                f"{', '.join(builtin_owners)}"
            )
        else:
            details.append(f"Key '{key}' has duplicate key binding across actions: {', '.join(owners)}")

    if not conflicts:
        return KeyBindingValidation(valid=True)
    return KeyBindingValidation(valid=False, error="; ".join(details), conflicts=tuple(conflicts))


class ActionRegistry:
    """Immutable snapshot of every available action and its key bindings.

    Construction either succeeds completely or raises one ActionRegistryError
    listing every problem found.
    """

    def __init__(
        self,
        custom_actions: Iterable[ActionDefinition | Mapping[str, object]] = (),
        key_bindings: Mapping[str, str] | None = None,
        environment: EnvironmentConfig | None = None,
        *,
        conflicts: Sequence[ConfigConflict] = (),
        sources: Sequence[ConfigSource] = (),
        action_sources: Mapping[str, Path] | None = None,
    ) -> None:
        key_bindings = dict(key_bindings or {})
        problems: list[ActionRegistryError] = []

        customs = self._validate_actions(custom_actions, problems)

        seen: set[str] = set()
        for action in customs:
            if action.id in seen:
                problems.append(
                    ActionRegistryError(
                        ActionRegistryErrorType.DUPLICATE_ACTION_ID,
                        f"Duplicate custom action id: {action.id}",
                        {"actionId": action.id},
                    )
                )
            seen.add(action.id)
            if action.id in CRITICAL_BUILTIN_IDS:
                problems.append(
                    ActionRegistryError(
                        ActionRegistryErrorType.CRITICAL_BUILTIN_OVERRIDE,
                        f"Cannot override critical built-in action: {action.id}",
                        {"actionId": action.id},
                    )
                )

        # Critical overrides are already reported; keep them out of the key check.
        checked = [action for action in customs if action.id not in CRITICAL_BUILTIN_IDS]
        validation = detect_key_binding_conflicts(checked, BUILTIN_ACTIONS, key_bindings)
        if not validation.valid:
            problems.append(
                ActionRegistryError(
                    ActionRegistryErrorType.KEY_BINDING_CONFLICT,
                    f"Key binding conflict detected: {validation.error}",
                    {"conflicts": list(validation.conflicts)},
                )
            )

        known_ids = {action.id for action in BUILTIN_ACTIONS} | {action.id for action in customs}
        for key, action_id in key_bindings.items():
            if action_id not in known_ids:
                problems.append(
                    ActionRegistryError(
                        ActionRegistryErrorType.UNKNOWN_ACTION_REFERENCE,
                        f"Key binding '{key}' refers to unknown action: {action_id}",
                        {"key": key, "actionId": action_id},
                    )
                )

        if problems:
            raise ActionRegistryError.aggregate(problems)

        custom_ids = {action.id for action in customs}
        builtin_ids = {action.id for action in BUILTIN_ACTIONS}
        actions: dict[str, ActionDefinition] = {}
        for action in BUILTIN_ACTIONS:
            if action.id not in custom_ids:
                actions[action.id] = action
        for action in customs:
            if action.id in builtin_ids:
                logger.info("Custom action replaces built-in: %s", action.id)
            actions[action.id] = action

        keys: dict[str, str] = {}
        for action in actions.values():
            for key in action.effective_keys:
                keys[key] = action.id
        keys.update(key_bindings)

        self._actions: Mapping[str, ActionDefinition] = MappingProxyType(actions)
        self._keys: Mapping[str, str] = MappingProxyType(keys)
        self._builtins = tuple(action for action in BUILTIN_ACTIONS if action.id not in custom_ids)
        self._customs = tuple(customs)
        self._environment = environment
        self._conflicts = tuple(conflicts)
        self._sources = tuple(sources)
        self._action_sources: Mapping[str, Path] = MappingProxyType(dict(action_sources or {}))
        logger.debug(
            "Registry built: %d action(s), %d key(s), %d custom",
            len(self._actions),
            len(self._keys),
            len(self._customs),
        )

    @staticmethod
    def _validate_actions(
        raw_actions: Iterable[ActionDefinition | Mapping[str, object]],
        problems: list[ActionRegistryError],
    ) -> list[ActionDefinition]:
        valid: list[ActionDefinition] = []
        for index, raw in enumerate(raw_actions):
            if isinstance(raw, ActionDefinition):
                valid.append(raw)
                continue
            try:
                valid.append(_action_adapter.validate_python(raw))
            except ValidationError as exc:
                issues = validation_issues(exc)
                label = raw.get("id") if isinstance(raw, Mapping) else None
                problems.append(
                    ActionRegistryError(
                        ActionRegistryErrorType.INVALID_ACTION_DEFINITION,
                        f"Invalid action definition {label or f'#{index}'}: "
                        + "; ".join(str(issue) for issue in issues),
                        {"index": index, "issues": issues},
                    )
                )
        return valid

    @classmethod
    def from_merged(cls, merged: MergedConfig) -> ActionRegistry:
        config = merged.config
        return cls(
            config.actions,
            config.key_bindings,
            config.environment,
            conflicts=merged.conflicts,
            sources=merged.sources,
            action_sources=merged.action_sources,
        )

    # --- Lookup ---

    def get_action_by_id(self, action_id: str) -> ActionDefinition | None:
        return self._actions.get(action_id)

    def get_action_by_key(self, key: str) -> ActionDefinition | None:
        action_id = self._keys.get(key)
        return self._actions.get(action_id) if action_id is not None else None

    def get_all_actions(self) -> list[ActionDefinition]:
        return list(self._actions.values())

    def get_builtin_actions(self) -> list[ActionDefinition]:
        """Built-ins still in effect, i.e. not replaced by a custom action."""
        return list(self._builtins)

    def get_custom_actions(self) -> list[ActionDefinition]:
        return list(self._customs)

    def is_builtin(self, action_id: str) -> bool:
        return any(action.id == action_id for action in self._builtins)

    def source_of(self, action_id: str) -> Path | None:
        """Config file that defined a custom action, if known."""
        return self._action_sources.get(action_id)

    @property
    def key_bindings(self) -> Mapping[str, str]:
        """Every effective key mapped to the id it triggers."""
        return self._keys

    @property
    def conflicts(self) -> tuple[ConfigConflict, ...]:
        return self._conflicts

    @property
    def sources(self) -> tuple[ConfigSource, ...]:
        return self._sources

    # --- Context ---

    def get_available_actions(self, context: AvailabilityContext) -> list[ActionDefinition]:
        return [action for action in self._actions.values() if is_action_available(action, context)]

    def get_environment_context(self) -> EnvironmentConfig:
        """Merged environment block with defaults filled in."""
        env = self._environment or EnvironmentConfig()
        return env.model_copy(
            update={
                "variables": dict(env.variables),
                "timeout": env.timeout if env.timeout is not None else DEFAULT_TIMEOUT_MS,
                "shell": env.shell if env.shell is not None else DEFAULT_SHELL,
            }
        )


def is_action_available(action: ActionDefinition, context: AvailabilityContext) -> bool:
    """Return True if the action is enabled and its ``when`` clause holds."""
    if not action.is_enabled:
        return False
    when = action.when
    if when is None:
        return True

    if when.file_types:
        file_name = context.file_name.lower()
        language = (context.detected_language or "").lower()
        matches = False
        for file_type in when.file_types:
            wanted = file_type.lower()
            suffix = wanted if wanted.startswith(".") else f".{wanted}"
            if (language and wanted == language) or file_name == wanted or file_name.endswith(suffix):
                matches = True
                break
        if not matches:
            return False

    if when.has_selection is not None and when.has_selection != context.has_selection:
        return False

    if when.line_count is not None:
        if when.line_count.min is not None and context.total_lines < when.line_count.min:
            return False
        if when.line_count.max is not None and context.total_lines > when.line_count.max:
            return False

    if when.mode is not None and when.mode != "any" and when.mode != context.mode:
        return False

    return True


def create_action_registry(
    working_directory: Path | str | None = None,
    config_path: Path | str | None = None,
    *,
    strategy: MergeStrategy = MergeStrategy.DETECT_CONFLICTS,
    strict: bool = True,
) -> ActionRegistry:
    """Read every config source and build a fresh registry.

    Call again to reload; an existing registry is never modified.
    """
    sources = config_sources(working_directory, config_path)
    merged = merge_configs(load_all(sources, strict=strict), strategy)
    return ActionRegistry.from_merged(merged)


async def acreate_action_registry(
    working_directory: Path | str | None = None,
    config_path: Path | str | None = None,
    *,
    strategy: MergeStrategy = MergeStrategy.DETECT_CONFLICTS,
    strict: bool = True,
) -> ActionRegistry:
    """Async variant of create_action_registry; config files are read concurrently."""
    sources = config_sources(working_directory, config_path)
    merged = merge_configs(await load_all_async(sources, strict=strict), strategy)
    return ActionRegistry.from_merged(merged)
