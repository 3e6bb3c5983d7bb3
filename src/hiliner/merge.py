"""Merging of layered action configs with conflict recording."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from hiliner.config import ActionConfig, ActionDefinition, ConfigMetadata, EnvironmentConfig
from hiliner.loader import LoadedConfig
from hiliner.paths import ConfigSource

logger = logging.getLogger(__name__)

BUILTIN_SOURCE = "<built-in>"
"""Stands in for a file path when a conflict involves a built-in action."""


class MergeStrategy(StrEnum):
    DETECT_CONFLICTS = "detect_conflicts"
    """Merge everything and record conflicts; key collisions are left for the registry to reject."""
    REPLACE = "replace"
    """Use only the highest-priority config."""
    MERGE_ALL = "merge_all"
    """Merge everything and settle key collisions; built-ins outrank every source, then higher priority wins."""


class ConflictType(StrEnum):
    DUPLICATE_ACTION_ID = "duplicate_action_id"
    DUPLICATE_KEY_BINDING = "duplicate_key_binding"


@dataclass(frozen=True)
class ConfigConflict:
    type: ConflictType
    key: str
    sources: tuple[str, ...]
    resolution: str


@dataclass(frozen=True)
class MergedConfig:
    config: ActionConfig
    sources: tuple[ConfigSource, ...] = ()
    conflicts: tuple[ConfigConflict, ...] = ()
    warnings: tuple[str, ...] = ()
    action_sources: Mapping[str, Path] = field(default_factory=dict)
    """Path of the file that supplied each custom action's final definition."""


def merge_configs(
    loaded: Sequence[LoadedConfig],
    strategy: MergeStrategy = MergeStrategy.DETECT_CONFLICTS,
) -> MergedConfig:
    """Merge loaded configs, lowest priority first.

    An action keeps the position of the first source that introduced it,
    while its fields come from the highest-priority source that defines it.
    """
    ordered = sorted(loaded, key=lambda item: item.source.kind)
    warnings = [warning for item in ordered for warning in item.warnings]

    if not ordered:
        return MergedConfig(config=ActionConfig.empty())

    if strategy is MergeStrategy.REPLACE:
        top = ordered[-1]
        logger.debug("Replace strategy: using only %s", top.path)
        aliases, alias_warnings = _drop_orphan_aliases(
            top.config.key_bindings,
            {action.id for action in top.config.actions},
            top.dropped_ids,
        )
        return MergedConfig(
            config=top.config.model_copy(update={"key_bindings": aliases}),
            sources=(top.source,),
            warnings=(*top.warnings, *alias_warnings),
            action_sources={action.id: top.path for action in top.config.actions},
        )

    actions: dict[str, ActionDefinition] = {}
    origin: dict[str, ConfigSource] = {}
    id_sources: dict[str, list[str]] = {}
    key_bindings: dict[str, str] = {}
    alias_origin: dict[str, ConfigSource] = {}
    variables: dict[str, str] = {}
    timeout: int | None = None
    shell: str | None = None
    has_environment = False
    version: str | None = None
    metadata: ConfigMetadata | None = None
    schema: str | None = None

    for item in ordered:
        config = item.config
        for action in config.actions:
            id_sources.setdefault(action.id, []).append(str(item.path))
            actions[action.id] = action
            origin[action.id] = item.source

        for key, action_id in config.key_bindings.items():
            key_bindings[key] = action_id
            alias_origin[key] = item.source

        env = config.environment
        if env is not None:
            has_environment = True
            variables.update(env.variables)
            timeout = env.timeout if env.timeout is not None else timeout
            shell = env.shell if env.shell is not None else shell

        version = config.version or version
        metadata = config.metadata or metadata
        schema = config.schema_ or schema

    key_bindings, alias_warnings = _drop_orphan_aliases(
        key_bindings,
        set(actions),
        frozenset().union(*(item.dropped_ids for item in ordered)),
    )
    warnings.extend(alias_warnings)

    conflicts = [
        ConfigConflict(
            type=ConflictType.DUPLICATE_ACTION_ID,
            key=action_id,
            sources=tuple(paths),
            resolution=f"highest priority wins ({paths[-1]})",
        )
        for action_id, paths in id_sources.items()
        if len(paths) > 1
    ]

    claims = _key_claims(actions, origin, key_bindings, alias_origin)
    resolutions: dict[str, str] = {}
    builtin_keys: set[str] = set()
    if strategy is MergeStrategy.MERGE_ALL:
        builtin_keys = {key for builtin in _active_builtins(actions) for key in builtin.effective_keys}
        actions, key_bindings, resolutions = _settle_key_collisions(
            actions, origin, key_bindings
        )

    for key, owners in claims.items():
        if len(owners) < 2:
            continue
        conflicts.append(
            ConfigConflict(
                type=ConflictType.DUPLICATE_KEY_BINDING,
                key=key,
                sources=tuple(dict.fromkeys(str(source.path) for source in owners.values())),
                resolution=resolutions.get(
                    key, f"unresolved: claimed by {', '.join(owners)}"
                ),
            )
        )
    # A key settled against a built-in has a single custom claimant.
    for key, resolution in resolutions.items():
        owners = claims.get(key, {})
        if len(owners) < 2 and key in builtin_keys:
            conflicts.append(
                ConfigConflict(
                    type=ConflictType.DUPLICATE_KEY_BINDING,
                    key=key,
                    sources=(*dict.fromkeys(str(s.path) for s in owners.values()), BUILTIN_SOURCE),
                    resolution=resolution,
                )
            )

    for conflict in conflicts:
        if conflict.type is ConflictType.DUPLICATE_KEY_BINDING:
            logger.warning("Key %r claimed by several actions: %s", conflict.key, conflict.resolution)
        else:
            logger.debug("Action id %r defined in %s", conflict.key, ", ".join(conflict.sources))

    environment = (
        EnvironmentConfig(variables=variables, timeout=timeout, shell=shell)
        if has_environment
        else None
    )
    merged = ActionConfig(
        schema_=schema,
        version=version,
        metadata=metadata,
        actions=tuple(actions.values()),
        key_bindings=key_bindings,
        environment=environment,
    )
    return MergedConfig(
        config=merged,
        sources=tuple(item.source for item in ordered),
        conflicts=tuple(conflicts),
        warnings=tuple(warnings),
        action_sources={action_id: origin[action_id].path for action_id in actions},
    )


def _key_claims(
    actions: Mapping[str, ActionDefinition],
    origin: Mapping[str, ConfigSource],
    key_bindings: Mapping[str, str],
    alias_origin: Mapping[str, ConfigSource],
) -> dict[str, dict[str, ConfigSource]]:
    """Map every effective key to the ids claiming it and the source of each claim."""
    claims: dict[str, dict[str, ConfigSource]] = {}
    for action in actions.values():
        for key in action.effective_keys:
            claims.setdefault(key, {}).setdefault(action.id, origin[action.id])
    for key, action_id in key_bindings.items():
        claims.setdefault(key, {}).setdefault(action_id, alias_origin[key])
    return claims


def _settle_key_collisions(
    actions: Mapping[str, ActionDefinition],
    origin: Mapping[str, ConfigSource],
    key_bindings: Mapping[str, str],
) -> tuple[dict[str, ActionDefinition], dict[str, str], dict[str, str]]:
    """Give each contested key to the highest-priority action claiming it.

    Built-in actions that stay in effect outrank every source. A losing
    alternative key is removed from the lower-priority action; a losing
    primary key drops that action. Aliases never take a key away from an
    action.
    """
    claimed: dict[str, str] = {
        key: builtin.id for builtin in _active_builtins(actions) for key in builtin.effective_keys
    }
    kept: dict[str, ActionDefinition] = {}
    dropped: set[str] = set()
    resolutions: dict[str, str] = {}

    by_priority = sorted(actions.values(), key=lambda a: origin[a.id].kind, reverse=True)
    for action in by_priority:
        owner = claimed.get(action.key)
        if owner is not None and owner != action.id:
            dropped.add(action.id)
            resolutions[action.key] = f"kept {owner}, dropped {action.id}"
            continue

        alternatives = []
        for key in action.alternative_keys:
            owner = claimed.get(key)
            if owner is not None and owner != action.id:
                resolutions[key] = f"kept {owner}, removed key from {action.id}"
            else:
                alternatives.append(key)
        if len(alternatives) != len(action.alternative_keys):
            action = action.model_copy(update={"alternative_keys": tuple(alternatives)})

        for key in action.effective_keys:
            claimed[key] = action.id
        kept[action.id] = action

    aliases: dict[str, str] = {}
    for key, action_id in key_bindings.items():
        owner = claimed.get(key)
        if action_id in dropped:
            resolutions.setdefault(key, f"dropped alias to removed action {action_id}")
        elif owner is not None and owner != action_id:
            resolutions[key] = f"kept {owner}, dropped alias to {action_id}"
        else:
            aliases[key] = action_id

    ordered = {action_id: kept[action_id] for action_id in actions if action_id in kept}
    for action_id in sorted(dropped):
        logger.warning("Dropped action %r: its key is taken by a higher priority action", action_id)
    return ordered, aliases, resolutions


def _active_builtins(actions: Mapping[str, ActionDefinition]) -> list[ActionDefinition]:
    """Built-ins a registry keeps alongside these custom actions."""
    from hiliner.actions.builtin import BUILTIN_ACTIONS
    from hiliner.actions.names import CRITICAL_BUILTIN_IDS

    return [
        builtin
        for builtin in BUILTIN_ACTIONS
        if builtin.id not in actions or builtin.id in CRITICAL_BUILTIN_IDS
    ]


def _drop_orphan_aliases(
    key_bindings: Mapping[str, str],
    action_ids: set[str],
    dropped_ids: frozenset[str],
) -> tuple[dict[str, str], list[str]]:
    """Remove aliases to actions that lenient loading dropped and nothing else defines."""
    from hiliner.actions.names import BuiltinActionId

    defined = action_ids | set(BuiltinActionId)
    aliases: dict[str, str] = {}
    warnings: list[str] = []
    for key, action_id in key_bindings.items():
        if action_id in dropped_ids and action_id not in defined:
            warnings.append(f"Dropped key binding '{key}': action {action_id} was dropped")
            logger.warning("Dropped key binding %r to invalid action %r", key, action_id)
            continue
        aliases[key] = action_id
    return aliases, warnings
