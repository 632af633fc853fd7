"""Drivers for the two top-level operations.

Both follow the same two phases: materialize descriptors, then orchestrate
the external commands they declare.  The target directory is always an
explicit argument; nothing here changes the process working directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from k4.config import Config
from k4.errors import DestinationExists, PathEscape, WorkspaceNotFound
from k4.orchestrator import CommandOrchestrator, ExternalCommand, OrchestrationResult
from k4.utils import console, print_success, print_summary_table, relative_display

from .descriptors import normalize_relative
from .materializer import MaterializeResult, materialize, materialize_workspace
from .templates import TemplateRegistry
from .topology import build_app, build_workspace

WORKSPACE_MARKER = "pnpm-workspace.yaml"


@dataclass
class OperationResult:
    """What an ``init`` or ``app`` run did."""

    root: Path
    materialized: MaterializeResult
    commands: list[ExternalCommand] = field(default_factory=list)
    orchestration: OrchestrationResult | None = None
    pnpm_version: str | None = None


def project_root(cwd: str | Path, name: str) -> Path:
    """Resolve the directory ``init`` will create for *name*.

    The name must denote a direct child of *cwd*.
    """
    parent = Path(cwd).resolve()
    candidate = normalize_relative(name)
    if candidate.is_absolute() or len(candidate.parts) != 1 or candidate.parts[0] == "..":
        raise PathEscape(name, parent)
    return parent / candidate.parts[0]


def find_workspace_root(start: str | Path) -> Path:
    """Walk up from *start* to the nearest directory with ``pnpm-workspace.yaml``."""
    origin = Path(start).resolve()
    for directory in (origin, *origin.parents):
        if (directory / WORKSPACE_MARKER).is_file():
            return directory
    raise WorkspaceNotFound(origin)


async def init_workspace(
    name: str,
    cwd: str | Path,
    config: Config,
    registry: TemplateRegistry | None = None,
) -> OperationResult:
    """Create a new monorepo called *name* inside *cwd*.

    Raises:
        DestinationExists: ``cwd/name`` already exists.
        PathEscape: *name* is not a plain directory name.
        ExternalCommandFailed: A setup command failed; files stay on disk.
    """
    root = project_root(cwd, name)
    if root.exists() or root.is_symlink():
        raise DestinationExists(root)

    pm = config.package_manager
    pnpm_version = await CommandOrchestrator(root.parent).probe(
        ExternalCommand(argv=[pm, "--version"], allow_failure=True),
        fallback=config.fallback_pnpm_version,
    )

    workspace = build_workspace(name, pnpm_version, config)
    materialized = await materialize_workspace(root, workspace, registry)
    _print_materialized(name, root, materialized)

    result = OperationResult(
        root=root,
        materialized=materialized,
        commands=workspace.commands(),
        pnpm_version=pnpm_version,
    )
    await _orchestrate(result, config)
    print_success(f"Monorepo {name} initialized successfully!")
    return result


async def add_app(
    name: str,
    kind: str,
    cwd: str | Path,
    config: Config,
    registry: TemplateRegistry | None = None,
) -> OperationResult:
    """Add an app of *kind* (``next`` or ``node``) to the enclosing workspace."""
    root = find_workspace_root(cwd)
    app = build_app(name, kind, config)
    materialized = await materialize(root, app, registry)
    _print_materialized(name, root, materialized)

    result = OperationResult(
        root=root,
        materialized=materialized,
        commands=list(app.post_create_commands),
    )
    await _orchestrate(result, config)
    print_success(f"App {name} initialized successfully!")
    return result


async def _orchestrate(result: OperationResult, config: Config) -> None:
    if not config.run_commands:
        console.print("[yellow]Skipping external commands; run them yourself:[/yellow]")
        console.print(f"  cd {result.root}", markup=False)
        for command in result.commands:
            console.print(f"  {command.display()}", markup=False)
        return

    orchestration = await CommandOrchestrator(result.root).run(result.commands)
    result.orchestration = orchestration
    orchestration.raise_for_failure()


def _print_materialized(name: str, root: Path, materialized: MaterializeResult) -> None:
    rows = {
        relative_display(path, root): "written" for path in materialized.written
    }
    rows.update(
        {
            relative_display(path, root) + "/": "created"
            for path in materialized.directories
            if not any(written.parent == path for written in materialized.written)
        }
    )
    print_summary_table(rows, title=f"{name}: {len(materialized.written)} file(s)")
