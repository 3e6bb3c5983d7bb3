"""Built-in action ids - type-safe identifiers for the native catalog."""

from __future__ import annotations

from enum import StrEnum


class BuiltinActionId(StrEnum):
    """All built-in hiliner actions."""

    # navigation
    QUIT = "quit"
    SCROLL_UP = "scrollUp"
    SCROLL_DOWN = "scrollDown"
    PAGE_UP = "pageUp"
    PAGE_DOWN = "pageDown"
    GO_TO_START = "goToStart"
    GO_TO_END = "goToEnd"

    # selection
    TOGGLE_SELECTION = "toggleSelection"
    SELECT_ALL = "selectAll"
    CLEAR_SELECTION = "clearSelection"

    # view / file
    SHOW_HELP = "showHelp"
    RELOAD = "reload"


CRITICAL_BUILTIN_IDS: frozenset[str] = frozenset({BuiltinActionId.QUIT, BuiltinActionId.SHOW_HELP})
"""Built-ins that configuration can never replace."""
