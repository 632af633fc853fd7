"""Declarative records describing what to materialize.

A descriptor says *what* a package or app looks like on disk (its files,
scripts, dependencies) and which commands must run once it exists.  It does
no I/O; the materializer and the orchestrator act on it.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field, field_validator

from k4.orchestrator import ExternalCommand

UNIT_ROOTS = ("apps", "packages")


class UnitKind(str, Enum):
    WORKSPACE_PACKAGE = "workspace-package"
    NODE_APP = "node-app"
    WEB_APP = "web-app"


class TemplateRef(BaseModel):
    """Reference to a registered template plus its local parameters."""

    template_id: str
    params: dict[str, Any] = Field(default_factory=dict)


class UnitDescriptor(BaseModel):
    """One package or app inside the workspace.

    ``files`` maps paths relative to ``relative_dir`` to the template that
    produces them; insertion order is the write order.  When ``owns_dir`` is
    set an external generator fills the directory, so it must not exist yet.
    """

    name: str = Field(..., min_length=1)
    kind: UnitKind
    relative_dir: str
    package_name: str
    files: dict[str, TemplateRef] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    post_create_commands: list[ExternalCommand] = Field(default_factory=list)
    owns_dir: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.name)

    def context(self) -> dict[str, Any]:
        """Template parameters shared by every file of this unit."""
        return {
            "name": self.name,
            "package_name": self.package_name,
            "scripts": self.scripts,
            "dependencies": self.dependencies,
            "dev_dependencies": self.dev_dependencies,
        }

    def params_for(self, ref: TemplateRef) -> dict[str, Any]:
        return {**self.context(), **ref.params}

    def unit_path(self) -> PurePosixPath:
        """Lexically normalized ``relative_dir``; may still start with ``..``."""
        return normalize_relative(self.relative_dir)


class PackageDescriptor(UnitDescriptor):
    kind: UnitKind = UnitKind.WORKSPACE_PACKAGE

    @field_validator("kind")
    @classmethod
    def _package_kind(cls, value: UnitKind) -> UnitKind:
        if value is not UnitKind.WORKSPACE_PACKAGE:
            raise ValueError("PackageDescriptor kind must be 'workspace-package'")
        return value


class AppDescriptor(UnitDescriptor):
    kind: UnitKind = UnitKind.NODE_APP

    @field_validator("kind")
    @classmethod
    def _app_kind(cls, value: UnitKind) -> UnitKind:
        if value is UnitKind.WORKSPACE_PACKAGE:
            raise ValueError("AppDescriptor kind must be 'node-app' or 'web-app'")
        return value


class WorkspaceDescriptor(BaseModel):
    """The whole monorepo: root files, members and the command plan.

    Commands run as ``setup_commands``, then every member's
    ``post_create_commands`` in member order, then ``finalize_commands``.
    """

    name: str = Field(..., min_length=1)
    files: dict[str, TemplateRef] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    members: list[UnitDescriptor] = Field(default_factory=list)
    setup_commands: list[ExternalCommand] = Field(default_factory=list)
    finalize_commands: list[ExternalCommand] = Field(default_factory=list)

    def member(self, name: str) -> UnitDescriptor:
        for unit in self.members:
            if unit.name == name:
                return unit
        raise KeyError(name)

    def commands(self) -> list[ExternalCommand]:
        plan = list(self.setup_commands)
        for unit in self.members:
            plan.extend(unit.post_create_commands)
        plan.extend(self.finalize_commands)
        return plan


def normalize_relative(relative: str) -> PurePosixPath:
    """Collapse ``.`` and ``..`` without touching the filesystem."""
    return PurePosixPath(posixpath.normpath(relative.replace("\\", "/")))
