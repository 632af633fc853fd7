"""Builders for JSON-shaped artifacts.

Each builder takes the render parameters and returns plain data; the
registry serialises it.  Key order is part of the output, so dicts are built
in the order the files should read.
"""

from __future__ import annotations

from typing import Any, Mapping

TURBO_SCHEMA = "https://turbo.build/schema.json"
TSCONFIG_SCHEMA = "https://json.schemastore.org/tsconfig"


def root_manifest(params: Mapping[str, Any]) -> dict[str, Any]:
    """Workspace ``package.json``; stamps the probed pnpm version."""
    return {
        "name": params["name"],
        "private": True,
        "scripts": {
            "build": "turbo run build",
            "dev": "turbo run dev",
            "lint": "turbo run lint",
            "check-types": "turbo run check-types",
            "test": "turbo run test",
            "format": "prettier --write .",
        },
        "devDependencies": {
            "prettier": "^3.3.3",
            "turbo": "latest",
            "typescript": params["typescript_version"],
        },
        "packageManager": f"pnpm@{params['pnpm_version']}",
    }


def turbo_config(params: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "$schema": TURBO_SCHEMA,
        "ui": "tui",
        "tasks": {
            "build": {
                "dependsOn": ["^build"],
                "inputs": ["$TURBO_DEFAULT$", ".env*"],
                "outputs": [".next/**", "!.next/cache/**", "dist/**"],
            },
            "lint": {
                "dependsOn": ["^lint"],
            },
            "check-types": {
                "dependsOn": ["^check-types"],
            },
            "dev": {
                "cache": False,
                "persistent": True,
            },
            "test": {
                "cache": False,
                "persistent": True,
            },
        },
    }


def tsconfig_base(params: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "$schema": TSCONFIG_SCHEMA,
        "extends": "@tsconfig/node20/tsconfig.json",
        "compilerOptions": {
            "module": "ESNext",
            "moduleResolution": "Bundler",
        },
    }


def tsconfig_extends(params: Mapping[str, Any]) -> dict[str, Any]:
    config: dict[str, Any] = {"extends": params["extends"]}
    if params.get("include"):
        config["include"] = list(params["include"])
    return config


def package_manifest(params: Mapping[str, Any]) -> dict[str, Any]:
    """``package.json`` for one workspace package or app.

    Optional keys are emitted only when present so that small packages keep
    small manifests.
    """
    manifest: dict[str, Any] = {"name": params["package_name"], "private": True}
    for key, field in (
        ("module_type", "type"),
        ("main", "main"),
        ("types", "types"),
    ):
        if params.get(key):
            manifest[field] = params[key]
    for key, field in (
        ("scripts", "scripts"),
        ("dependencies", "dependencies"),
        ("dev_dependencies", "devDependencies"),
    ):
        if params.get(key):
            manifest[field] = dict(params[key])
    return manifest
