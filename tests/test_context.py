"""Tests for action context building and placeholder substitution."""

from __future__ import annotations

import time

import pytest

from hiliner.actions.context import (
    ActionContext,
    AvailabilityContext,
    FileData,
    FileMetadata,
    SelectionState,
    build_action_context,
)
from hiliner.actions.template import resolve_action, substitute, substitute_script
from hiliner.config import ActionDefinition, EnvironmentConfig
from helpers import action

FILE = FileData.from_text(
    "/src/app.py",
    "import os\nprint(os.getcwd())\n\nx = 1\n",
    FileMetadata(detected_language="python"),
)


def make_context(**overrides: str) -> ActionContext:
    values = {
        "selected_text": "",
        "file_path": "/src/app.py",
        "line_start": "",
        "line_end": "",
        "language": "python",
        "selection_count": "0",
        "total_lines": "4",
        "current_line": "1",
    }
    values.update(overrides)
    return ActionContext(**values)


def test_file_data_from_text() -> None:
    assert FILE.total_lines == 4
    assert FILE.lines[1] == "print(os.getcwd())"


def test_context_without_selection() -> None:
    context = build_action_context(SelectionState(), FILE, 3)
    assert context.selected_text == ""
    assert context.line_start == ""
    assert context.line_end == ""
    assert context.selection_count == "0"
    assert context.total_lines == "4"
    assert context.current_line == "3"
    assert context.language == "python"
    assert context.file_path == "/src/app.py"


def test_context_joins_selection_in_ascending_order() -> None:
    selection = SelectionState(frozenset({4, 1, 2}), last_selected_line=1)
    context = build_action_context(selection, FILE, 1)
    assert context.selected_text == "import os\nprint(os.getcwd())\nx = 1"
    assert context.line_start == "1"
    assert context.line_end == "4"
    assert context.selection_count == "3"


def test_context_skips_out_of_range_lines() -> None:
    selection = SelectionState(frozenset({0, 2, 99}))
    context = build_action_context(selection, FILE, 2)
    assert context.selected_text == "print(os.getcwd())"
    assert context.line_start == "0"
    assert context.line_end == "99"
    assert context.selection_count == "3"


def test_context_language_defaults_to_unknown() -> None:
    file_data = FileData.from_text("/tmp/notes", "a\nb")
    context = build_action_context(SelectionState(), file_data, 1)
    assert context.language == "unknown"


def test_context_variables() -> None:
    context = make_context(selected_text="hi", selection_count="1")
    assert context.environment_variables["SELECTED_TEXT"] == "hi"
    assert context.environment_variables["SELECTION_COUNT"] == "1"
    assert context.template_variables["selectedText"] == "hi"
    assert set(context.template_variables) == {
        "selectedText",
        "filePath",
        "lineStart",
        "lineEnd",
        "language",
        "selectionCount",
        "totalLines",
        "currentLine",
    }


def test_context_is_frozen() -> None:
    context = make_context()
    with pytest.raises(AttributeError):
        context.language = "rust"  # type: ignore[misc]
    with pytest.raises(TypeError):
        context.environment_variables["LANGUAGE"] = "rust"  # type: ignore[index]


def test_availability_context_from_state() -> None:
    context = AvailabilityContext.from_state(SelectionState(frozenset({2})), FILE)
    assert context.has_selection
    assert context.total_lines == 4
    assert context.detected_language == "python"
    assert context.file_name == "app.py"
    assert context.mode == "interactive"


# --- Substitution ---


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("black {{filePath}}", "black /src/app.py"),
        ("{{ filePath }}:{{lineStart}}", "/src/app.py:"),
        ("{{language}}-{{language}}", "python-python"),
        ("{{unknownVar}} stays", "{{unknownVar}} stays"),
        ("{ {filePath} }", "{ {filePath} }"),
        ("{{{{filePath}}}}", "{/src/app.py}"),
        ("{{filePath", "{{filePath"),
        ("no placeholders", "no placeholders"),
    ],
)
def test_substitute(template: str, expected: str) -> None:
    assert substitute(template, make_context()) == expected


def test_substituted_values_are_not_rescanned() -> None:
    context = make_context(selected_text="{{filePath}}")
    assert substitute("echo {{selectedText}}", context) == "echo {{filePath}}"


def test_substitute_with_plain_mapping() -> None:
    assert substitute("{{a}} and {{b}}", {"a": "1"}) == "1 and {{b}}"


def test_substitute_structured_command() -> None:
    definition = ActionDefinition.model_validate(
        action(
            "count",
            "C",
            {
                "type": "sequence",
                "sequence": [
                    {"type": "builtin", "builtin": "clearSelection"},
                    {
                        "type": "external",
                        "command": "wc",
                        "args": ["-l", "{{filePath}}"],
                        "environment": {"LANG_NAME": "{{language}}"},
                        "onSuccess": "done {{totalLines}}",
                    },
                ],
            },
        )
    )

    script = substitute_script(definition.script, make_context())

    builtin_step, external_step = script.sequence  # type: ignore[union-attr]
    assert builtin_step == definition.script.sequence[0]  # type: ignore[union-attr]
    assert external_step.args == ("-l", "/src/app.py")
    assert external_step.environment == {"LANG_NAME": "python"}
    assert external_step.on_success == "done 4"
    # The original definition is untouched.
    assert definition.script.sequence[1].args == ("-l", "{{filePath}}")  # type: ignore[union-attr]


def test_resolve_action_string_script() -> None:
    definition = ActionDefinition.model_validate(action("fmt", "F", "black {{filePath}}"))
    environment = EnvironmentConfig(variables={"EDITOR": "vi", "LANGUAGE": "overridden"})

    resolved = resolve_action(definition, make_context(), environment)

    assert resolved.command_text == "black /src/app.py"
    assert resolved.environment["EDITOR"] == "vi"
    assert resolved.environment["LANGUAGE"] == "python"
    assert resolved.environment["FILE_PATH"] == "/src/app.py"


def test_resolve_action_external_command_text() -> None:
    definition = ActionDefinition.model_validate(
        action("wc", "W", {"type": "external", "command": "wc", "args": ["-l", "{{filePath}}"]})
    )
    assert resolve_action(definition, make_context()).command_text == "wc -l /src/app.py"


def test_resolve_action_builtin_has_no_command_text() -> None:
    definition = ActionDefinition.model_validate(
        action("clr", "X", {"type": "builtin", "builtin": "clearSelection"})
    )
    resolved = resolve_action(definition, make_context())
    assert resolved.command_text is None
    assert resolved.script == definition.script


# --- Scale and stability ---


def test_context_for_large_selection_is_fast() -> None:
    file_data = FileData.from_text("/src/big.txt", "\n".join(f"line {n}" for n in range(1, 20_001)))
    selection = SelectionState(frozenset(range(1, 10_001)))

    started = time.perf_counter()
    context = build_action_context(selection, file_data, 1)
    elapsed = time.perf_counter() - started

    assert context.selection_count == "10000"
    assert context.line_end == "10000"
    assert context.selected_text.count("\n") == 9_999
    assert elapsed < 0.5


def test_substitute_large_template_scales_linearly() -> None:
    context = make_context()
    small = "{{filePath}} {{nope}} " * 10_000
    large = small * 10

    started = time.perf_counter()
    substitute(small, context)
    small_elapsed = time.perf_counter() - started

    started = time.perf_counter()
    result = substitute(large, context)
    large_elapsed = time.perf_counter() - started

    assert result.count("/src/app.py") == 100_000
    assert result.count("{{nope}}") == 100_000
    assert large_elapsed < 2.0
    # Ten times the input should cost far less than a hundred times the time.
    assert large_elapsed < max(small_elapsed, 0.001) * 50


@pytest.mark.parametrize(
    "template",
    [
        "black {{filePath}}",
        "{{unknown}} {{language}} {{ totalLines }}",
        "{{{{filePath}}}} {{{filePath}}} }}{{filePath}}{{",
        "{{{{nope}}}} {{filePath",
        "",
    ],
)
def test_substitute_is_idempotent(template: str) -> None:
    context = make_context()
    once = substitute(template, context)
    twice = substitute(once, context)
    assert twice == once
    assert twice.count("{{") <= template.count("{{")
