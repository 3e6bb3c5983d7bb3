"""Keymap help: every action grouped by category for display."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from types import MappingProxyType

from hiliner.actions.registry import ActionRegistry
from hiliner.merge import ConflictType

CATEGORY_ORDER = ("navigation", "selection", "editing", "file", "view", "search", "custom")

KEY_LABELS: Mapping[str, str] = MappingProxyType(
    {
        " ": "space",
        "arrowup": "↑",
        "arrowdown": "↓",
        "arrowleft": "←",
        "arrowright": "→",
        "tab": "Tab",
        "shift+tab": "Shift+Tab",
    }
)


@dataclass(frozen=True)
class KeymapEntry:
    key: str
    alternative_keys: tuple[str, ...]
    name: str
    description: str
    category: str
    builtin: bool
    source: str | None = None


@dataclass(frozen=True)
class KeymapHelp:
    categories: dict[str, list[KeymapEntry]] = field(default_factory=dict)
    total_builtin: int = 0
    total_custom: int = 0
    aliases: dict[str, str] = field(default_factory=dict)
    conflicts: list[str] = field(default_factory=list)
    """Key collisions recorded while merging config sources."""

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def generate_keymap_help(registry: ActionRegistry) -> KeymapHelp:
    """Group the registry's actions by category, in a stable display order.

    Entries within a category are sorted by key, case-insensitively.
    """
    grouped: dict[str, list[KeymapEntry]] = {}
    total_builtin = total_custom = 0

    for action in registry.get_all_actions():
        builtin = registry.is_builtin(action.id)
        if builtin:
            total_builtin += 1
        else:
            total_custom += 1
        source = registry.source_of(action.id)
        category = action.category or "custom"
        grouped.setdefault(category, []).append(
            KeymapEntry(
                key=action.key,
                alternative_keys=action.alternative_keys,
                name=action.name or action.id,
                description=action.description,
                category=category,
                builtin=builtin,
                source=str(source) if source else None,
            )
        )

    ordered = {
        name: sorted(grouped[name], key=lambda entry: (entry.key.lower(), entry.key))
        for name in CATEGORY_ORDER
        if name in grouped
    }
    aliases = {
        key: action_id
        for key, action_id in registry.key_bindings.items()
        if (action := registry.get_action_by_id(action_id)) is not None
        and key not in action.effective_keys
    }
    conflicts = [
        f"Key '{conflict.key}' claimed in {', '.join(conflict.sources)}: {conflict.resolution}"
        for conflict in registry.conflicts
        if conflict.type is ConflictType.DUPLICATE_KEY_BINDING
    ]
    return KeymapHelp(
        categories=ordered,
        total_builtin=total_builtin,
        total_custom=total_custom,
        aliases=aliases,
        conflicts=conflicts,
    )


def format_key(key: str) -> str:
    """Human-readable key label; arrow keys become symbols."""
    return KEY_LABELS.get(key.lower(), key)
