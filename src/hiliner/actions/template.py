"""``{{name}}`` placeholder substitution for action command text."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from hiliner.actions.context import ActionContext
from hiliner.config import (
    ActionDefinition,
    BuiltinCommand,
    EnvironmentConfig,
    ExternalCommand,
    ScriptCommand,
    SequenceCommand,
    StructuredCommand,
)

# An optional enclosing "{{" ... "}}" pair is captured so that a doubly
# wrapped token such as {{{{filePath}}}} collapses to {value}.
_TOKEN = re.compile(r"(\{\{)?\{\{([^{}]*)\}\}(\}\})?")


def substitute(template: str, context: ActionContext | Mapping[str, str]) -> str:
    """Replace every known ``{{name}}`` token with its value.

    Unknown tokens and stray braces are left exactly as written. Substituted
    values are never scanned again, so the work is a single pass over the
    template.
    """
    variables = context.template_variables if isinstance(context, ActionContext) else context

    def _replace(match: re.Match[str]) -> str:
        lead, name, trail = match.groups()
        value = variables.get(name.strip())
        if value is None:
            return match.group(0)
        if lead and trail:
            return "{" + value + "}"
        return (lead or "") + value + (trail or "")

    return _TOKEN.sub(_replace, template)


def substitute_script(
    script: str | StructuredCommand,
    context: ActionContext | Mapping[str, str],
) -> str | StructuredCommand:
    """Apply substitution to every text field of a script, keeping its shape."""
    if isinstance(script, str):
        return substitute(script, context)
    if isinstance(script, BuiltinCommand):
        return script
    if isinstance(script, SequenceCommand):
        steps = tuple(substitute_script(step, context) for step in script.sequence)
        return script.model_copy(update={"sequence": steps})
    if isinstance(script, (ExternalCommand, ScriptCommand)):

        def sub(value: str | None) -> str | None:
            return substitute(value, context) if value is not None else None

        return script.model_copy(
            update={
                "command": substitute(script.command, context),
                "args": tuple(substitute(arg, context) for arg in script.args),
                "environment": {k: substitute(v, context) for k, v in script.environment.items()},
                "working_directory": sub(script.working_directory),
                "on_success": sub(script.on_success),
                "on_failure": sub(script.on_failure),
            }
        )
    raise TypeError(f"Unsupported script type: {type(script).__name__}")


@dataclass(frozen=True)
class ResolvedAction:
    """An action ready for an executor: substituted script plus environment."""

    action: ActionDefinition
    script: str | StructuredCommand
    environment: Mapping[str, str]

    @property
    def command_text(self) -> str | None:
        """Command line for shell-style scripts, None for builtin and sequence commands."""
        if isinstance(self.script, str):
            return self.script
        if isinstance(self.script, (ExternalCommand, ScriptCommand)):
            return " ".join((self.script.command, *self.script.args))
        return None


def resolve_action(
    action: ActionDefinition,
    context: ActionContext,
    environment: EnvironmentConfig | None = None,
) -> ResolvedAction:
    """Pair an action with its substituted script and the variables to export.

    Configured variables are exported first; the eight context values take
    precedence over them.
    """
    variables = dict(environment.variables) if environment else {}
    variables.update(context.environment_variables)
    return ResolvedAction(
        action=action,
        script=substitute_script(action.script, context),
        environment=MappingProxyType(variables),
    )
