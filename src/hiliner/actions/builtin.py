"""Built-in hiliner actions, always present in a registry."""

from __future__ import annotations

from hiliner.actions.names import BuiltinActionId
from hiliner.config import ActionDefinition, BuiltinCommand, BuiltinOperation


def _builtin(
    action_id: BuiltinActionId,
    key: str,
    description: str,
    category: str,
    *alternative_keys: str,
) -> ActionDefinition:
    return ActionDefinition(
        id=action_id.value,
        description=description,
        key=key,
        alternative_keys=alternative_keys,
        script=BuiltinCommand(type="builtin", builtin=BuiltinOperation(action_id.value)),
        category=category,
    )


BUILTIN_ACTIONS: tuple[ActionDefinition, ...] = (
    _builtin(BuiltinActionId.QUIT, "q", "Quit the application", "navigation"),
    _builtin(BuiltinActionId.SCROLL_UP, "k", "Scroll up one line", "navigation", "arrowup"),
    _builtin(BuiltinActionId.SCROLL_DOWN, "j", "Scroll down one line", "navigation", "arrowdown"),
    _builtin(BuiltinActionId.PAGE_UP, "b", "Scroll up one page", "navigation", "pageup"),
    _builtin(BuiltinActionId.PAGE_DOWN, "f", "Scroll down one page", "navigation", "pagedown"),
    _builtin(BuiltinActionId.GO_TO_START, "g", "Go to the beginning of the file", "navigation"),
    _builtin(BuiltinActionId.GO_TO_END, "G", "Go to the end of the file", "navigation"),
    _builtin(BuiltinActionId.TOGGLE_SELECTION, " ", "Toggle selection for current line", "selection"),
    _builtin(BuiltinActionId.SELECT_ALL, "a", "Select all lines", "selection"),
    _builtin(BuiltinActionId.CLEAR_SELECTION, "c", "Clear all selections", "selection"),
    _builtin(BuiltinActionId.SHOW_HELP, "?", "Show help and key bindings", "view"),
    _builtin(BuiltinActionId.RELOAD, "r", "Reload the current file", "file"),
)
