"""End-to-end scaffolding runs.

These tests drive ``init`` and ``app`` exactly as the CLI does and verify the
generated tree: workspace files, per-unit manifests and configs, and the
Docker Compose services.  External tools are replaced by ``fake_processes``
so no pnpm, npx or git is required.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from k4.config import Config
from k4.errors import DestinationExists
from k4.scaffolder.workspace import add_app, init_workspace


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestInitMonorepo:
    """``k4 init demo-app``"""

    async def test_layout(self, workspace_root: Path):
        assert workspace_root.name == "demo-app"
        for relative in (
            "pnpm-workspace.yaml",
            "package.json",
            "turbo.json",
            ".gitignore",
            "apps/web",
            "apps/worker",
            "packages/db",
            "packages/queue",
            "packages/typescript-config",
            "packages/eslint-config",
            "packages/docker-dev",
        ):
            assert (workspace_root / relative).exists(), relative

    async def test_workspace_file(self, workspace_root: Path):
        data = yaml.safe_load((workspace_root / "pnpm-workspace.yaml").read_text())
        assert data == {"packages": ["apps/*", "packages/*"]}

    async def test_root_manifest(self, workspace_root: Path):
        manifest = _json(workspace_root / "package.json")
        assert manifest["name"] == "demo-app"
        assert manifest["private"] is True
        assert manifest["packageManager"] == "pnpm@9.0.0"
        assert manifest["scripts"]["format"] == "prettier --write ."

    async def test_compose_services(self, workspace_root: Path):
        compose = yaml.safe_load(
            (workspace_root / "packages/docker-dev/compose.yml").read_text()
        )
        postgres = compose["services"]["postgres"]
        assert postgres["image"] == "postgres:16"
        assert postgres["environment"] == {
            "POSTGRES_USER": "postgres",
            "POSTGRES_PASSWORD": "postgres",
            "POSTGRES_DB": "demo_app_dev",
        }
        assert postgres["ports"] == ["5432:5432"]
        redis = compose["services"]["redis"]
        assert redis["image"] == "redis:6.2-alpine"
        assert redis["ports"] == ["6379:6379"]

    async def test_library_packages(self, workspace_root: Path):
        for name in ("db", "queue"):
            unit = workspace_root / "packages" / name
            manifest = _json(unit / "package.json")
            assert manifest["name"] == f"@repo/{name}"
            assert manifest["devDependencies"]["@repo/typescript-config"] == "workspace:*"
            assert _json(unit / "tsconfig.json") == {
                "extends": "@repo/typescript-config/base.json"
            }
            assert "dts: true" in (unit / "tsup.config.ts").read_text()
            assert (unit / "src" / "index.ts").exists()

    async def test_db_env_matches_compose(self, workspace_root: Path):
        env = (workspace_root / "packages/db/.env").read_text()
        assert "postgres:postgres@localhost:5432/demo_app_dev" in env
        schema = (workspace_root / "packages/db/prisma/schema.prisma").read_text()
        assert 'env("DATABASE_URL")' in schema

    async def test_worker_app(self, workspace_root: Path):
        worker = workspace_root / "apps/worker"
        manifest = _json(worker / "package.json")
        assert manifest["name"] == "@repo/worker"
        assert manifest["dependencies"] == {
            "@repo/db": "workspace:*",
            "@repo/queue": "workspace:*",
        }
        index = (worker / "src/index.ts").read_text()
        assert 'from "@repo/queue"' in index
        assert 'from "@repo/db"' in index

    async def test_web_dir_left_for_generator(self, workspace_root: Path):
        assert list((workspace_root / "apps/web").iterdir()) == []

    async def test_identical_runs_are_byte_identical(
        self, tmp_path: Path, offline_config: Config, fake_processes
    ):
        first = await init_workspace("one", tmp_path, offline_config)
        second = await init_workspace("two", tmp_path, offline_config)
        a = _snapshot(first.root)
        b = _snapshot(second.root)
        assert a.keys() == b.keys()
        differing = {name for name in a if a[name] != b[name]}
        # only files that embed the project name may differ
        assert differing == {
            "package.json",
            "packages/db/.env",
            "packages/docker-dev/compose.yml",
        }


@pytest.mark.integration
class TestAddNodeApp:
    """``k4 app jobs --node`` inside the workspace, then once more."""

    async def test_adds_app_without_touching_others(
        self, workspace_root: Path, offline_config: Config
    ):
        before = _snapshot(workspace_root)

        await add_app("jobs", "node", workspace_root / "apps", offline_config)

        jobs = workspace_root / "apps/jobs"
        assert _json(jobs / "package.json")["name"] == "@repo/jobs"
        assert (jobs / "src/index.ts").read_text() == 'console.log("Hello, World!");'
        assert (jobs / "eslint.config.js").exists()

        after = _snapshot(workspace_root)
        assert {k: v for k, v in after.items() if not k.startswith("apps/jobs/")} == before

    async def test_repeat_raises_destination_exists(
        self, workspace_root: Path, offline_config: Config
    ):
        await add_app("jobs", "node", workspace_root, offline_config)
        before = _snapshot(workspace_root)

        with pytest.raises(DestinationExists):
            await add_app("jobs", "node", workspace_root, offline_config)

        assert _snapshot(workspace_root) == before
