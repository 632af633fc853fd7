"""Template registry for monorepo scaffolding.

Every generated artifact is produced by a registered template id.  Two
flavours exist:

* **text** templates are Jinja2 files under ``k4/scaffolder/templates/``
  rendered with ``StrictUndefined`` (YAML, TypeScript, Prisma, env files);
* **json** templates are Python builders returning a dict which is
  serialised with two-space indentation (package manifests, turbo and
  TypeScript configs).

Rendering is a pure function of ``(template_id, params)``: no I/O besides
reading the template source, no caching of output, and no silent blanks for
missing parameters.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    UndefinedError,
    select_autoescape,
)

from k4.errors import MissingParam, UnknownTemplate

from . import manifests

JsonBuilder = Callable[[Mapping[str, Any]], dict[str, Any]]

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

_UNDEFINED_RE = re.compile(r"'([^']+)' is undefined")


@dataclass(frozen=True)
class TemplateSpec:
    """Registration record for one template id."""

    template_id: str
    required: frozenset[str]
    source: str | None = None
    builder: JsonBuilder | None = None


class TemplateRegistry:
    """Holds named templates and renders them with explicit parameters."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self._specs: dict[str, TemplateSpec] = {}

    # -- Registration --------------------------------------------------------

    def register_text(
        self, template_id: str, source: str, required: Iterable[str] = ()
    ) -> None:
        """Register a Jinja2 template file (relative to the template dir)."""
        self._specs[template_id] = TemplateSpec(
            template_id=template_id, required=frozenset(required), source=source
        )

    def register_json(
        self, template_id: str, builder: JsonBuilder, required: Iterable[str] = ()
    ) -> None:
        """Register a builder whose dict output is serialised as JSON."""
        self._specs[template_id] = TemplateSpec(
            template_id=template_id, required=frozenset(required), builder=builder
        )

    def template_ids(self) -> list[str]:
        return sorted(self._specs)

    def spec(self, template_id: str) -> TemplateSpec:
        try:
            return self._specs[template_id]
        except KeyError:
            raise UnknownTemplate(template_id) from None

    # -- Rendering -----------------------------------------------------------

    def render(self, template_id: str, params: Mapping[str, Any]) -> str:
        """Render *template_id* with *params*.

        Raises:
            UnknownTemplate: The id is not registered (or its source file is
                missing from the template directory).
            MissingParam: A declared parameter is absent, or a text template
                references a variable that was not supplied.
        """
        spec = self.spec(template_id)

        missing = [name for name in spec.required if name not in params]
        if missing:
            raise MissingParam(template_id, missing)

        if spec.builder is not None:
            try:
                data = spec.builder(params)
            except KeyError as exc:
                raise MissingParam(template_id, [str(exc.args[0])]) from exc
            return json.dumps(data, indent=2)

        assert spec.source is not None
        try:
            template = self.env.get_template(spec.source)
        except TemplateNotFound as exc:
            raise UnknownTemplate(template_id) from exc
        try:
            return template.render(**params)
        except UndefinedError as exc:
            match = _UNDEFINED_RE.search(str(exc))
            name = match.group(1) if match else str(exc)
            raise MissingParam(template_id, [name]) from exc


# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------


def default_registry(template_dir: str | Path | None = None) -> TemplateRegistry:
    """Build the registry of every template the built-in topology uses."""
    registry = TemplateRegistry(template_dir)

    # Workspace root
    registry.register_text("workspace/pnpm-workspace.yaml", "workspace/pnpm-workspace.yaml.j2")
    registry.register_text("workspace/gitignore", "workspace/gitignore.j2")
    registry.register_json(
        "workspace/package.json",
        manifests.root_manifest,
        required=("name", "pnpm_version", "typescript_version"),
    )
    registry.register_json("workspace/turbo.json", manifests.turbo_config)

    # Shared configuration packages
    registry.register_json("typescript/base.json", manifests.tsconfig_base)
    registry.register_json(
        "typescript/tsconfig.json", manifests.tsconfig_extends, required=("extends",)
    )
    registry.register_text(
        "eslint/index.js", "eslint-config/index.js.j2"
    )
    registry.register_text(
        "eslint/eslint.config.js", "eslint-config/eslint.config.js.j2",
        required=("eslint_package",),
    )

    # Generic unit manifest and build config
    registry.register_json(
        "package/package.json", manifests.package_manifest, required=("package_name",)
    )
    registry.register_text("node/tsup.config.ts", "node/tsup.config.ts.j2", required=("dts",))
    registry.register_text("node/index.ts", "node/index.ts.j2")

    # Local services
    registry.register_text(
        "docker/compose.yml",
        "docker-dev/compose.yml.j2",
        required=("database_name", "postgres_image", "redis_image"),
    )

    # Database package
    registry.register_text("db/schema.prisma", "db/schema.prisma.j2")
    registry.register_text("db/index.ts", "db/index.ts.j2")
    registry.register_text("db/env", "db/env.j2", required=("database_name",))

    # Queue package and worker app
    registry.register_text("queue/index.ts", "queue/index.ts.j2", required=("queue_name",))
    registry.register_text(
        "worker/index.ts",
        "worker/index.ts.j2",
        required=("queue_name", "queue_package", "db_package"),
    )

    return registry


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""
