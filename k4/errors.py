"""Exception hierarchy for k4.

Every failure the scaffolder can report derives from ``K4Error`` so the CLI
can turn it into a console message and an exit code in one place.
Structural errors (paths, templates, descriptors) are raised before any file
is written; ``ExternalCommandFailed`` is raised after orchestration stops and
leaves the files on disk untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from k4.orchestrator import ExternalCommand


class K4Error(Exception):
    """Base class for all k4 errors."""

    exit_code: int = 1


class DestinationExists(K4Error):
    """Raised when materialization would overwrite an existing path."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(
            f"Refusing to overwrite existing path: {self.path}. "
            "Remove it first or choose another name."
        )


class PathEscape(K4Error):
    """Raised when a destination would land outside its allowed root."""

    def __init__(self, path: str | Path, root: str | Path | None = None) -> None:
        self.path = str(path)
        self.root = Path(root) if root is not None else None
        where = f" (root: {self.root})" if self.root is not None else ""
        super().__init__(f"Path escapes the project tree: {self.path}{where}")


class DescriptorConflict(K4Error):
    """Raised when two workspace members collide by identity or destination."""


class UnknownTemplate(K4Error):
    """Raised when rendering a template id that was never registered."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Unknown template: {template_id!r}")


class MissingParam(K4Error):
    """Raised when a template is rendered without one of its parameters."""

    def __init__(self, template_id: str, names: list[str]) -> None:
        self.template_id = template_id
        self.names = sorted(names)
        super().__init__(
            f"Template {template_id!r} is missing parameter(s): "
            + ", ".join(self.names)
        )


class WorkspaceNotFound(K4Error):
    """Raised when no ``pnpm-workspace.yaml`` is found above a directory."""

    def __init__(self, start: str | Path) -> None:
        self.start = Path(start)
        super().__init__(
            f"No pnpm-workspace.yaml found in {self.start} or any parent directory. "
            "Run `k4 init <name>` first, or cd into an existing workspace."
        )


class ExternalCommandFailed(K4Error):
    """Raised when a required external command exits non-zero."""

    def __init__(self, command: ExternalCommand, index: int, exit_code: int) -> None:
        self.command = command
        self.index = index
        self.exit_code = min(max(exit_code, 1), 255)
        self.returncode = exit_code
        super().__init__(
            f"Command #{index + 1} failed (exit {exit_code}): {command.display()}"
        )
