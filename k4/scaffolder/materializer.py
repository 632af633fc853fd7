"""Turns descriptors into files on disk.

Materialization is validate-all-then-write-all: every destination is
confined to its root, every template is rendered and every destination is
checked for prior existence before the first byte is written.  Directories
are idempotent; files never are.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Mapping

from k4.errors import DescriptorConflict, DestinationExists, PathEscape

from .descriptors import (
    UNIT_ROOTS,
    TemplateRef,
    UnitDescriptor,
    WorkspaceDescriptor,
    normalize_relative,
)
from .templates import TemplateRegistry, default_registry


@dataclass
class MaterializeResult:
    """Paths produced by one materialization call."""

    written: list[Path] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)

    def merge(self, other: "MaterializeResult") -> None:
        self.written.extend(other.written)
        self.directories.extend(other.directories)


@dataclass
class _PlannedFile:
    destination: Path
    template_id: str
    content: str = ""


@dataclass
class _Plan:
    """Everything one descriptor will write, computed before writing."""

    label: str
    directories: list[Path] = field(default_factory=list)
    files: list[_PlannedFile] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def materialize(
    root: str | Path,
    descriptor: UnitDescriptor,
    registry: TemplateRegistry | None = None,
) -> MaterializeResult:
    """Write one package or app under *root*.

    Raises:
        PathEscape: ``relative_dir`` is not under ``apps/`` or ``packages/``
            or a file key leaves the unit directory.
        DestinationExists: A destination file already exists (or the
            directory does, for ``owns_dir`` units).
        UnknownTemplate / MissingParam: Propagated from the registry.

    Any of these is raised before anything is written.
    """
    registry = registry or default_registry()
    root_path = Path(root).resolve()
    plan = _plan_unit(root_path, descriptor)
    _render(plan, registry, descriptor.files, descriptor.params_for)
    _check_existing(plan)
    return await asyncio.to_thread(_write_plans, [plan])


async def materialize_workspace(
    root: str | Path,
    workspace: WorkspaceDescriptor,
    registry: TemplateRegistry | None = None,
) -> MaterializeResult:
    """Create *root* and write the workspace files followed by every member.

    *root* must not exist.  Member identity and destination paths must be
    unique across the whole workspace (``DescriptorConflict`` otherwise).
    """
    registry = registry or default_registry()
    root_path = Path(root).resolve()
    if root_path.exists() or root_path.is_symlink():
        raise DestinationExists(root_path)

    _check_members(workspace)

    root_params: dict[str, Any] = {"name": workspace.name, **workspace.params}
    root_plan = _Plan(label="workspace root", directories=[root_path])
    for relative, ref in workspace.files.items():
        destination = _confine(root_path, PurePosixPath("."), relative)
        root_plan.files.append(_PlannedFile(destination, ref.template_id))
    plans = [root_plan] + [_plan_unit(root_path, unit) for unit in workspace.members]

    _check_destinations(plans)

    _render(root_plan, registry, workspace.files, lambda ref: {**root_params, **ref.params})
    for plan, unit in zip(plans[1:], workspace.members):
        _render(plan, registry, unit.files, unit.params_for)
    for plan in plans:
        _check_existing(plan)

    return await asyncio.to_thread(_write_plans, plans)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def _plan_unit(root: Path, unit: UnitDescriptor) -> _Plan:
    unit_dir = unit.unit_path()
    parts = unit_dir.parts
    if unit_dir.is_absolute() or len(parts) < 2 or parts[0] not in UNIT_ROOTS:
        raise PathEscape(unit.relative_dir, root)

    base = root.joinpath(*parts)
    if unit.owns_dir and (base.exists() or base.is_symlink()):
        raise DestinationExists(base)

    plan = _Plan(label=unit.name, directories=[base])
    for relative, ref in unit.files.items():
        destination = _confine(root, unit_dir, relative)
        plan.files.append(_PlannedFile(destination, ref.template_id))
    return plan


def _confine(root: Path, base: PurePosixPath, relative: str) -> Path:
    """Join *relative* onto ``root/base``, refusing anything that leaves it."""
    candidate = normalize_relative(relative)
    if str(candidate) == "." or candidate.is_absolute() or candidate.parts[0] == "..":
        shown = relative if not base.parts else f"{base.as_posix()}/{relative}"
        raise PathEscape(shown, root)
    return root.joinpath(*base.parts, *candidate.parts)


def _render(
    plan: _Plan,
    registry: TemplateRegistry,
    refs: Mapping[str, TemplateRef],
    params_for: Callable[[TemplateRef], Mapping[str, Any]],
) -> None:
    for planned, ref in zip(plan.files, refs.values()):
        planned.content = registry.render(ref.template_id, params_for(ref))


def _check_members(workspace: WorkspaceDescriptor) -> None:
    seen_keys: set[tuple[str, str]] = set()
    seen_dirs: dict[PurePosixPath, str] = {}
    for unit in workspace.members:
        if unit.key in seen_keys:
            raise DescriptorConflict(
                f"Duplicate workspace member {unit.kind.value} {unit.name!r}"
            )
        seen_keys.add(unit.key)
        unit_dir = unit.unit_path()
        if unit_dir in seen_dirs:
            raise DescriptorConflict(
                f"Members {seen_dirs[unit_dir]!r} and {unit.name!r} share "
                f"directory {unit_dir.as_posix()}"
            )
        seen_dirs[unit_dir] = unit.name


def _check_destinations(plans: list[_Plan]) -> None:
    owners: dict[Path, str] = {}
    for plan in plans:
        for planned in plan.files:
            if planned.destination in owners:
                raise DescriptorConflict(
                    f"{owners[planned.destination]!r} and {plan.label!r} both "
                    f"write {planned.destination}"
                )
            owners[planned.destination] = plan.label


def _check_existing(plan: _Plan) -> None:
    for directory in plan.directories:
        if directory.exists() and not directory.is_dir():
            raise DestinationExists(directory)
    for planned in plan.files:
        if planned.destination.exists() or planned.destination.is_symlink():
            raise DestinationExists(planned.destination)
        for parent in planned.destination.parents:
            if parent.exists():
                if not parent.is_dir():
                    raise DestinationExists(parent)
                break


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def _write_plans(plans: list[_Plan]) -> MaterializeResult:
    result = MaterializeResult()
    for plan in plans:
        for directory in plan.directories:
            _ensure_dir(directory, result)
        for planned in plan.files:
            _ensure_dir(planned.destination.parent, result)
            try:
                with planned.destination.open("x", encoding="utf-8", newline="") as fh:
                    fh.write(planned.content)
            except FileExistsError:
                raise DestinationExists(planned.destination) from None
            result.written.append(planned.destination)
    return result


def _ensure_dir(directory: Path, result: MaterializeResult) -> None:
    if directory.is_dir():
        return
    directory.mkdir(parents=True, exist_ok=True)
    result.directories.append(directory)
