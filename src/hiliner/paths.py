"""Config source discovery - XDG, user-home and project-local paths."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

APP_DIR = "hiliner"
PROJECT_DIR = ".hiliner"
CONFIG_FILENAME = "action-config.json"


class SourceKind(IntEnum):
    """Where a config file comes from. Higher values win on merge."""

    SYSTEM = 1
    USER = 2
    PROJECT = 3
    EXPLICIT = 4

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class ConfigSource:
    kind: SourceKind
    path: Path

    @property
    def optional(self) -> bool:
        """Discovered sources may be absent; an explicit one may not."""
        return self.kind is not SourceKind.EXPLICIT


def system_config_path() -> Path:
    """Return $XDG_CONFIG_HOME/hiliner/action-config.json or the ~/.config fallback."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return _normalize(base / APP_DIR / CONFIG_FILENAME)


def user_config_path() -> Path:
    """Return ~/.hiliner/action-config.json."""
    return _normalize(Path.home() / PROJECT_DIR / CONFIG_FILENAME)


def project_config_path(working_directory: Path | str) -> Path:
    """Return <working_directory>/.hiliner/action-config.json."""
    return _normalize(Path(working_directory) / PROJECT_DIR / CONFIG_FILENAME)


def resolve_explicit_path(path: Path | str, working_directory: Path | str) -> Path:
    """Expand a leading ``~`` and resolve relative paths against the working directory."""
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = Path(working_directory) / candidate
    return _normalize(candidate)


def config_sources(
    working_directory: Path | str | None = None,
    explicit: Path | str | None = None,
) -> list[ConfigSource]:
    """Return candidate config sources in ascending merge priority.

    Always three discovered locations (system, user, project), plus the
    explicit override last when one is given. Only builds paths; the
    filesystem is not touched.
    """
    cwd = _normalize(Path(working_directory).expanduser()) if working_directory else Path.cwd()
    sources = [
        ConfigSource(SourceKind.SYSTEM, system_config_path()),
        ConfigSource(SourceKind.USER, user_config_path()),
        ConfigSource(SourceKind.PROJECT, project_config_path(cwd)),
    ]
    if explicit is not None:
        sources.append(ConfigSource(SourceKind.EXPLICIT, resolve_explicit_path(explicit, cwd)))
    return sources


def _normalize(path: Path) -> Path:
    # Lexical only: no symlink resolution, so no filesystem access.
    return Path(os.path.normpath(os.path.abspath(path)))
