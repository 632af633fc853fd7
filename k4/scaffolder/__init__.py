"""k4 scaffolder -- materializes monorepo descriptors onto disk.

Quick usage::

    from k4.config import Config
    from k4.scaffolder import init_workspace

    result = await init_workspace("demo-app", Path.cwd(), Config())
"""

from k4.scaffolder.descriptors import (
    AppDescriptor,
    PackageDescriptor,
    TemplateRef,
    UnitDescriptor,
    UnitKind,
    WorkspaceDescriptor,
)
from k4.scaffolder.materializer import MaterializeResult, materialize, materialize_workspace
from k4.scaffolder.templates import TemplateRegistry, default_registry
from k4.scaffolder.workspace import (
    OperationResult,
    add_app,
    find_workspace_root,
    init_workspace,
)

__all__ = [
    "AppDescriptor",
    "MaterializeResult",
    "OperationResult",
    "PackageDescriptor",
    "TemplateRef",
    "TemplateRegistry",
    "UnitDescriptor",
    "UnitKind",
    "WorkspaceDescriptor",
    "add_app",
    "default_registry",
    "find_workspace_root",
    "init_workspace",
    "materialize",
    "materialize_workspace",
]
