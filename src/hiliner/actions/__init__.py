"""Hiliner actions subsystem."""

from hiliner.actions.context import (
    ActionContext,
    AvailabilityContext,
    FileData,
    FileMetadata,
    SelectionState,
    build_action_context,
)
from hiliner.actions.names import CRITICAL_BUILTIN_IDS, BuiltinActionId
from hiliner.actions.registry import (
    ActionRegistry,
    KeyBindingValidation,
    acreate_action_registry,
    create_action_registry,
    detect_key_binding_conflicts,
)
from hiliner.actions.template import ResolvedAction, resolve_action, substitute

__all__ = [
    "ActionContext",
    "ActionRegistry",
    "AvailabilityContext",
    "BuiltinActionId",
    "CRITICAL_BUILTIN_IDS",
    "FileData",
    "FileMetadata",
    "KeyBindingValidation",
    "ResolvedAction",
    "SelectionState",
    "acreate_action_registry",
    "build_action_context",
    "create_action_registry",
    "detect_key_binding_conflicts",
    "resolve_action",
    "substitute",
]
