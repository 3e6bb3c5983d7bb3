"""ActionContext - the values exposed to a resolved action at dispatch time."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import PurePath
from types import MappingProxyType


@dataclass(frozen=True)
class SelectionState:
    """Selected line numbers (1-based) as supplied by the selection component."""

    selected_lines: frozenset[int] = frozenset()
    last_selected_line: int | None = None

    @property
    def selection_count(self) -> int:
        return len(self.selected_lines)


@dataclass(frozen=True)
class FileMetadata:
    detected_language: str | None = None
    encoding: str | None = None
    size: int | None = None
    is_binary: bool | None = None


@dataclass(frozen=True)
class FileData:
    """File content as supplied by the file loading component."""

    content: str
    lines: Sequence[str]
    total_lines: int
    file_path: str
    metadata: FileMetadata | None = None

    @classmethod
    def from_text(
        cls,
        file_path: str,
        content: str,
        metadata: FileMetadata | None = None,
    ) -> FileData:
        lines = tuple(content.splitlines())
        return cls(
            content=content,
            lines=lines,
            total_lines=len(lines),
            file_path=file_path,
            metadata=metadata,
        )


@dataclass(frozen=True)
class AvailabilityContext:
    """Live viewer state that action ``when`` conditions are checked against."""

    file_path: str = ""
    total_lines: int = 0
    has_selection: bool = False
    detected_language: str | None = None
    mode: str = "interactive"

    @property
    def file_name(self) -> str:
        return PurePath(self.file_path).name

    @classmethod
    def from_state(
        cls,
        selection: SelectionState,
        file_data: FileData,
        mode: str = "interactive",
    ) -> AvailabilityContext:
        metadata = file_data.metadata
        return cls(
            file_path=file_data.file_path,
            total_lines=file_data.total_lines,
            has_selection=selection.selection_count > 0,
            detected_language=metadata.detected_language if metadata else None,
            mode=mode,
        )


# SCREAMING_CASE name -> camelCase template name
VARIABLE_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "SELECTED_TEXT": "selectedText",
        "FILE_PATH": "filePath",
        "LINE_START": "lineStart",
        "LINE_END": "lineEnd",
        "LANGUAGE": "language",
        "SELECTION_COUNT": "selectionCount",
        "TOTAL_LINES": "totalLines",
        "CURRENT_LINE": "currentLine",
    }
)


@dataclass(frozen=True)
class ActionContext:
    """The eight string values handed to one action invocation.

    Built fresh for every dispatch and never mutated.
    """

    selected_text: str
    file_path: str
    line_start: str
    line_end: str
    language: str
    selection_count: str
    total_lines: str
    current_line: str
    _values: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        values = {
            "SELECTED_TEXT": self.selected_text,
            "FILE_PATH": self.file_path,
            "LINE_START": self.line_start,
            "LINE_END": self.line_end,
            "LANGUAGE": self.language,
            "SELECTION_COUNT": self.selection_count,
            "TOTAL_LINES": self.total_lines,
            "CURRENT_LINE": self.current_line,
        }
        object.__setattr__(self, "_values", MappingProxyType(values))

    @property
    def environment_variables(self) -> Mapping[str, str]:
        """Values keyed by SCREAMING_CASE name, for command environments."""
        return self._values

    @property
    def template_variables(self) -> Mapping[str, str]:
        """Values keyed by camelCase name, for ``{{name}}`` substitution."""
        return MappingProxyType(
            {VARIABLE_NAMES[name]: value for name, value in self._values.items()}
        )


def build_action_context(
    selection: SelectionState,
    file_data: FileData,
    current_line: int,
) -> ActionContext:
    """Turn live selection, file and cursor state into an ActionContext."""
    selected = selection.selected_lines
    last_line = min(file_data.total_lines, len(file_data.lines))
    lines = file_data.lines

    # Ascending line order regardless of the order lines were selected in.
    selected_text = "\n".join(lines[n - 1] for n in sorted(selected) if 1 <= n <= last_line)

    metadata = file_data.metadata
    language = (metadata.detected_language if metadata else None) or "unknown"

    return ActionContext(
        selected_text=selected_text,
        file_path=file_data.file_path,
        line_start=str(min(selected)) if selected else "",
        line_end=str(max(selected)) if selected else "",
        language=language,
        selection_count=str(len(selected)),
        total_lines=str(file_data.total_lines),
        current_line=str(current_line),
    )
