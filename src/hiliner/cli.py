"""Hiliner CLI — typer-based entry point."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, TypeVar

import typer

from hiliner.merge import MergeStrategy

T = TypeVar("T")

app = typer.Typer(
    name="hiliner",
    help="Inspect and resolve keyboard actions for the hiliner file viewer.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration commands.")
actions_app = typer.Typer(help="Action commands.")
app.add_typer(config_app, name="config")
app.add_typer(actions_app, name="actions")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Explicit config file (highest priority)."),
]
CwdOption = Annotated[
    Path | None,
    typer.Option("--cwd", help="Working directory for project config discovery."),
]
StrategyOption = Annotated[
    MergeStrategy,
    typer.Option("--strategy", help="How to combine config sources."),
]


@app.callback()
def main(
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging.")] = False,
) -> None:
    _setup_logging(debug)


# --- Config subcommands ---


@config_app.command("paths")
def config_paths(config: ConfigOption = None, cwd: CwdOption = None) -> None:
    """List config sources in ascending priority."""
    from hiliner.paths import config_sources

    for source in config_sources(cwd, config):
        marker = "✓" if source.path.exists() else "-"
        typer.echo(f"  {marker} {source.kind.label:<8} {source.path}")


@config_app.command("validate")
def config_validate(
    config: ConfigOption = None,
    cwd: CwdOption = None,
    lenient: Annotated[
        bool,
        typer.Option("--lenient", help="Drop invalid actions instead of failing."),
    ] = False,
) -> None:
    """Validate every config source and the registry built from them."""
    from hiliner.actions.registry import ActionRegistry
    from hiliner.loader import load_all
    from hiliner.merge import merge_configs
    from hiliner.paths import config_sources

    loaded = _or_exit(lambda: load_all(config_sources(cwd, config), strict=not lenient))
    merged = merge_configs(loaded)
    registry = _or_exit(lambda: ActionRegistry.from_merged(merged))

    if not loaded:
        typer.echo("No config files found — only built-in actions are available.")
    for item in loaded:
        typer.echo(f"✓ Config valid: {item.path} ({len(item.config.actions)} actions)")
    for warning in merged.warnings:
        typer.echo(f"  ! {warning}")
    typer.echo(f"  actions  = {len(registry.get_all_actions())}")
    typer.echo(f"  bindings = {len(registry.key_bindings)} keys")


@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    cwd: CwdOption = None,
    strategy: StrategyOption = MergeStrategy.DETECT_CONFLICTS,
) -> None:
    """Show the merged configuration and recorded conflicts as JSON."""
    from hiliner.loader import load_all
    from hiliner.merge import merge_configs
    from hiliner.paths import config_sources

    merged = _or_exit(lambda: merge_configs(load_all(config_sources(cwd, config)), strategy))
    data = {
        "sources": [str(source.path) for source in merged.sources],
        "config": merged.config.to_json_dict(),
        "conflicts": [
            {
                "type": str(conflict.type),
                "key": conflict.key,
                "sources": list(conflict.sources),
                "resolution": conflict.resolution,
            }
            for conflict in merged.conflicts
        ],
    }
    typer.echo(json.dumps(data, indent=2))


# --- Actions subcommands ---


@actions_app.command("list")
def actions_list(
    config: ConfigOption = None,
    cwd: CwdOption = None,
    strategy: StrategyOption = MergeStrategy.DETECT_CONFLICTS,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
) -> None:
    """List every action and its keys, grouped by category."""
    from hiliner.actions.keymap import format_key, generate_keymap_help
    from hiliner.actions.registry import create_action_registry

    registry = _or_exit(lambda: create_action_registry(cwd, config, strategy=strategy))
    help_ = generate_keymap_help(registry)

    if json_output:
        typer.echo(json.dumps(help_.to_dict(), indent=2))
        return

    if help_.conflicts:
        typer.echo("Key conflicts:")
        for conflict in help_.conflicts:
            typer.echo(f"  ! {conflict}")
    for category, entries in help_.categories.items():
        typer.echo(f"{category.capitalize()}:")
        for entry in entries:
            keys = ", ".join(format_key(k) for k in (entry.key, *entry.alternative_keys))
            suffix = "" if entry.builtin else "  (custom)"
            typer.echo(f"  {keys:<16} {entry.description}{suffix}")
    for key, action_id in help_.aliases.items():
        typer.echo(f"  alias {format_key(key)} -> {action_id}")
    summary = f"\n{help_.total_builtin} built-in, {help_.total_custom} custom"
    if help_.conflicts:
        summary += f" ({len(help_.conflicts)} conflicts)"
    typer.echo(summary)


@actions_app.command("resolve")
def actions_resolve(
    key: Annotated[str, typer.Argument(help="Key that triggers the action.")],
    file: Annotated[Path, typer.Argument(help="File the action runs against.")],
    line: Annotated[
        list[int] | None,
        typer.Option("--line", "-l", help="Selected line number (repeatable)."),
    ] = None,
    cursor: Annotated[int, typer.Option("--cursor", help="Cursor line.")] = 1,
    language: Annotated[
        str | None,
        typer.Option("--language", help="Detected language of the file."),
    ] = None,
    config: ConfigOption = None,
    cwd: CwdOption = None,
) -> None:
    """Print the command an action would run for the given file and selection."""
    from hiliner.actions.context import FileData, FileMetadata, SelectionState, build_action_context
    from hiliner.actions.registry import create_action_registry
    from hiliner.actions.template import resolve_action

    registry = _or_exit(lambda: create_action_registry(cwd, config))
    action = registry.get_action_by_key(key)
    if action is None:
        typer.echo(f"✗ No action bound to key {key!r}", err=True)
        raise typer.Exit(code=1)

    try:
        content = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        typer.echo(f"✗ Cannot read {file}: {e}", err=True)
        raise typer.Exit(code=1) from e

    file_data = FileData.from_text(
        str(file.resolve()), content, FileMetadata(detected_language=language)
    )
    selection = SelectionState(frozenset(line or ()), line[-1] if line else None)
    context = build_action_context(selection, file_data, cursor)
    resolved = resolve_action(action, context, registry.get_environment_context())

    typer.echo(f"action: {action.id}")
    if resolved.command_text is not None:
        typer.echo(resolved.command_text)
    else:
        script = resolved.script.model_dump(mode="json", by_alias=True, exclude_none=True)  # type: ignore[union-attr]
        typer.echo(json.dumps(script, indent=2))


# --- Helpers ---


def _or_exit(build: Callable[[], T]) -> T:
    """Run a config step, turning hiliner errors into a readable report and exit code 1."""
    from hiliner.errors import ActionRegistryError, ConfigLoadError, ConfigValidationError

    try:
        return build()
    except ConfigValidationError as e:
        typer.echo(f"✗ Config validation failed: {e.path}", err=True)
        for issue in e.errors:
            typer.echo(f"  {issue}", err=True)
        raise typer.Exit(code=1) from e
    except ConfigLoadError as e:
        typer.echo(f"✗ {e.type}: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    except ActionRegistryError as e:
        typer.echo("✗ Action registry could not be built:", err=True)
        for problem in e.errors:
            typer.echo(f"  [{problem.type}] {problem.message}", err=True)
        raise typer.Exit(code=1) from e


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
