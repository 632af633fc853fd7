"""Descriptor factories for the built-in monorepo layout.

``build_workspace`` returns the full ``init`` topology:

* ``packages/typescript-config`` -- shared ``base.json``
* ``packages/eslint-config``     -- shared flat ESLint config
* ``packages/docker-dev``        -- Postgres + Redis for local development
* ``packages/db``                -- Prisma schema and client
* ``packages/queue``             -- BullMQ connection and helpers
* ``apps/worker``                -- Node.js worker consuming the queue
* ``apps/web``                   -- Next.js app (generated by create-next-app)

``build_app`` returns a single app for ``k4 app``.
"""

from __future__ import annotations

from k4.config import Config
from k4.orchestrator import ExternalCommand

from .descriptors import (
    AppDescriptor,
    PackageDescriptor,
    TemplateRef,
    UnitKind,
    WorkspaceDescriptor,
)

APP_KINDS = ("next", "node")
DEFAULT_QUEUE = "default"
WORKSPACE_PROTOCOL = "workspace:*"

TSUP_VERSION = "^8.2.4"
ESLINT_VERSION = "^9.9.0"
PRISMA_VERSION = "^5.18.0"
BULLMQ_VERSION = "^5.12.0"

CREATE_NEXT_APP = ["npx", "create-next-app@latest"]
CREATE_NEXT_APP_FLAGS = ["--typescript", "--eslint", "--use-pnpm"]


def database_name(project_name: str) -> str:
    """Development database name: ``demo-app`` -> ``demo_app_dev``."""
    return f"{project_name.replace('-', '_')}_dev"


# ---------------------------------------------------------------------------
# Shared configuration packages
# ---------------------------------------------------------------------------


def typescript_config_package(config: Config) -> PackageDescriptor:
    return PackageDescriptor(
        name="typescript-config",
        relative_dir="packages/typescript-config",
        package_name=config.package_name("typescript-config"),
        dev_dependencies={"@tsconfig/node20": "^20.1.4"},
        files={
            "package.json": TemplateRef(template_id="package/package.json"),
            "base.json": TemplateRef(template_id="typescript/base.json"),
        },
    )


def eslint_config_package(config: Config) -> PackageDescriptor:
    return PackageDescriptor(
        name="eslint-config",
        relative_dir="packages/eslint-config",
        package_name=config.package_name("eslint-config"),
        dependencies={
            "@eslint/js": ESLINT_VERSION,
            "typescript-eslint": "^8.2.0",
        },
        dev_dependencies={"eslint": ESLINT_VERSION},
        files={
            "package.json": TemplateRef(
                template_id="package/package.json",
                params={"module_type": "module", "main": "index.js"},
            ),
            "index.js": TemplateRef(template_id="eslint/index.js"),
        },
    )


def docker_dev_package(project_name: str, config: Config) -> PackageDescriptor:
    return PackageDescriptor(
        name="docker-dev",
        relative_dir="packages/docker-dev",
        package_name=config.package_name("docker-dev"),
        scripts={
            "dev": "docker compose up",
            "db:reset": "docker compose rm --force --stop postgres && docker compose up -d",
        },
        dev_dependencies={"typescript": config.typescript_version},
        files={
            "compose.yml": TemplateRef(
                template_id="docker/compose.yml",
                params={
                    "database_name": database_name(project_name),
                    "postgres_image": config.postgres_image,
                    "redis_image": config.redis_image,
                },
            ),
            "package.json": TemplateRef(template_id="package/package.json"),
        },
    )


# ---------------------------------------------------------------------------
# Library packages
# ---------------------------------------------------------------------------


def _library_files(config: Config) -> dict[str, TemplateRef]:
    return {
        "package.json": TemplateRef(
            template_id="package/package.json",
            params={
                "module_type": "module",
                "main": "./dist/index.js",
                "types": "./dist/index.d.ts",
            },
        ),
        "tsconfig.json": TemplateRef(
            template_id="typescript/tsconfig.json",
            params={"extends": f"{config.package_name('typescript-config')}/base.json"},
        ),
        "tsup.config.ts": TemplateRef(template_id="node/tsup.config.ts", params={"dts": True}),
    }


def _library_dev_dependencies(config: Config) -> dict[str, str]:
    return {
        config.package_name("typescript-config"): WORKSPACE_PROTOCOL,
        "@types/node": config.node_types_version,
        "tsup": TSUP_VERSION,
        "typescript": config.typescript_version,
    }


def db_package(project_name: str, config: Config) -> PackageDescriptor:
    package_name = config.package_name("db")
    files = _library_files(config)
    files["prisma/schema.prisma"] = TemplateRef(template_id="db/schema.prisma")
    files["src/index.ts"] = TemplateRef(template_id="db/index.ts")
    files[".env"] = TemplateRef(
        template_id="db/env", params={"database_name": database_name(project_name)}
    )
    return PackageDescriptor(
        name="db",
        relative_dir="packages/db",
        package_name=package_name,
        scripts={
            "build": "tsup --clean",
            "dev": "tsup --watch",
            "check-types": "tsc --noEmit",
            "db:generate": "prisma generate",
            "db:migrate": "prisma migrate dev",
            "db:push": "prisma db push",
        },
        dependencies={"@prisma/client": PRISMA_VERSION},
        dev_dependencies={**_library_dev_dependencies(config), "prisma": PRISMA_VERSION},
        files=files,
        post_create_commands=[
            ExternalCommand(
                argv=[config.package_manager, "--filter", package_name, "exec", "prisma", "generate"]
            ),
        ],
    )


def queue_package(config: Config) -> PackageDescriptor:
    files = _library_files(config)
    files["src/index.ts"] = TemplateRef(
        template_id="queue/index.ts", params={"queue_name": DEFAULT_QUEUE}
    )
    return PackageDescriptor(
        name="queue",
        relative_dir="packages/queue",
        package_name=config.package_name("queue"),
        scripts={
            "build": "tsup --clean",
            "dev": "tsup --watch",
            "check-types": "tsc --noEmit",
        },
        dependencies={"bullmq": BULLMQ_VERSION},
        dev_dependencies=_library_dev_dependencies(config),
        files=files,
    )


# ---------------------------------------------------------------------------
# Apps
# ---------------------------------------------------------------------------


def node_app(
    name: str,
    config: Config,
    *,
    index: TemplateRef | None = None,
    dependencies: dict[str, str] | None = None,
    post_create_commands: list[ExternalCommand] | None = None,
) -> AppDescriptor:
    """A tsup-built Node.js app under ``apps/<name>``."""
    return AppDescriptor(
        name=name,
        kind=UnitKind.NODE_APP,
        relative_dir=f"apps/{name}",
        package_name=config.package_name(name),
        scripts={
            "build": "tsup --clean",
            "check-types": "tsc --noEmit",
            "dev": "tsup --watch --onSuccess 'pnpm start'",
            "lint": "eslint src",
            "start": "node dist/index.js",
        },
        dependencies=dependencies or {},
        dev_dependencies={
            config.package_name("eslint-config"): WORKSPACE_PROTOCOL,
            config.package_name("typescript-config"): WORKSPACE_PROTOCOL,
            "@types/node": config.node_types_version,
            "eslint": ESLINT_VERSION,
            "tsup": TSUP_VERSION,
            "typescript": config.typescript_version,
        },
        files={
            "package.json": TemplateRef(
                template_id="package/package.json", params={"module_type": "module"}
            ),
            "tsup.config.ts": TemplateRef(template_id="node/tsup.config.ts", params={"dts": False}),
            "tsconfig.json": TemplateRef(
                template_id="typescript/tsconfig.json",
                params={"extends": f"{config.package_name('typescript-config')}/base.json"},
            ),
            "eslint.config.js": TemplateRef(
                template_id="eslint/eslint.config.js",
                params={"eslint_package": config.package_name("eslint-config")},
            ),
            "src/index.ts": index or TemplateRef(template_id="node/index.ts"),
        },
        post_create_commands=post_create_commands or [],
    )


def worker_app(config: Config) -> AppDescriptor:
    return node_app(
        "worker",
        config,
        index=TemplateRef(
            template_id="worker/index.ts",
            params={
                "queue_name": DEFAULT_QUEUE,
                "queue_package": config.package_name("queue"),
                "db_package": config.package_name("db"),
            },
        ),
        dependencies={
            config.package_name("db"): WORKSPACE_PROTOCOL,
            config.package_name("queue"): WORKSPACE_PROTOCOL,
        },
    )


def next_app(
    name: str,
    config: Config,
    *,
    workspace_dependencies: list[str] | None = None,
) -> AppDescriptor:
    """A Next.js app; create-next-app owns the directory contents.

    create-next-app names the package after the directory, so the package
    name is unscoped.
    """
    relative_dir = f"apps/{name}"
    commands = [ExternalCommand(argv=[*CREATE_NEXT_APP, relative_dir, *CREATE_NEXT_APP_FLAGS])]
    if workspace_dependencies:
        commands.append(
            ExternalCommand(
                argv=[
                    config.package_manager, "--filter", name, "add",
                    *(f"{dep}@{WORKSPACE_PROTOCOL}" for dep in workspace_dependencies),
                ]
            )
        )
    return AppDescriptor(
        name=name,
        kind=UnitKind.WEB_APP,
        relative_dir=relative_dir,
        package_name=name,
        owns_dir=True,
        post_create_commands=commands,
    )


def build_app(name: str, kind: str, config: Config) -> AppDescriptor:
    """Descriptor for ``k4 app <name> --<kind>``."""
    if kind == "next":
        return next_app(name, config)
    if kind == "node":
        return node_app(
            name,
            config,
            post_create_commands=[ExternalCommand(argv=[config.package_manager, "install"])],
        )
    raise ValueError(f"Unknown app kind {kind!r}; expected one of {', '.join(APP_KINDS)}")


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


def build_workspace(name: str, pnpm_version: str, config: Config) -> WorkspaceDescriptor:
    """Descriptor for ``k4 init <name>``."""
    pm = config.package_manager
    return WorkspaceDescriptor(
        name=name,
        params={
            "pnpm_version": pnpm_version,
            "typescript_version": config.typescript_version,
        },
        files={
            "pnpm-workspace.yaml": TemplateRef(template_id="workspace/pnpm-workspace.yaml"),
            "package.json": TemplateRef(template_id="workspace/package.json"),
            "turbo.json": TemplateRef(template_id="workspace/turbo.json"),
            ".gitignore": TemplateRef(template_id="workspace/gitignore"),
        },
        members=[
            typescript_config_package(config),
            eslint_config_package(config),
            docker_dev_package(name, config),
            db_package(name, config),
            queue_package(config),
            worker_app(config),
            next_app(
                "web",
                config,
                workspace_dependencies=[config.package_name("db"), config.package_name("queue")],
            ),
        ],
        setup_commands=[
            ExternalCommand(argv=["git", "init"]),
            ExternalCommand(argv=[pm, "install"]),
        ],
        finalize_commands=[
            ExternalCommand(argv=[pm, "build"]),
            ExternalCommand(argv=[pm, "format"]),
        ],
    )
