"""k4 configuration.

Typed settings for the scaffolder. All settings use Pydantic v2 models so
they are validated at construction time and can be overridden from the
environment without boiler-plate.
"""

from __future__ import annotations

import os
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Stamped into the root manifest when ``pnpm --version`` cannot be probed, so
# offline and pnpm-less runs still produce a reproducible workspace.
FALLBACK_PNPM_VERSION = "9.0.0"

_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global k4 configuration.

    Instances are created once by the CLI entry point and passed to the
    ``init`` and ``app`` drivers.
    """

    scope: str = Field(default="@repo", description="npm scope for generated packages")
    package_manager: str = Field(default="pnpm")
    fallback_pnpm_version: str = Field(default=FALLBACK_PNPM_VERSION)
    run_commands: bool = Field(
        default=True,
        description="Execute the command plan after writing files",
    )
    typescript_version: str = Field(default="^5.5.4")
    node_types_version: str = Field(default="^20.14.0")
    postgres_image: str = Field(default="postgres:16")
    redis_image: str = Field(default="redis:6.2-alpine")

    @field_validator("scope")
    @classmethod
    def _check_scope(cls, value: str) -> str:
        if not re.fullmatch(r"@[a-z0-9][a-z0-9._-]*", value):
            raise ValueError(f"scope must look like '@name', got {value!r}")
        return value

    @field_validator("fallback_pnpm_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not re.fullmatch(r"\d+\.\d+\.\d+", value):
            raise ValueError(f"fallback_pnpm_version must be X.Y.Z, got {value!r}")
        return value

    def package_name(self, name: str) -> str:
        """Return the scoped package name for a workspace unit."""
        return f"{self.scope}/{name}"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            K4_SCOPE, K4_FALLBACK_PNPM_VERSION, K4_SKIP_COMMANDS,
            K4_POSTGRES_IMAGE, K4_REDIS_IMAGE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("K4_SCOPE"):
            kwargs["scope"] = os.environ["K4_SCOPE"]
        if os.environ.get("K4_FALLBACK_PNPM_VERSION"):
            kwargs["fallback_pnpm_version"] = os.environ["K4_FALLBACK_PNPM_VERSION"]
        if os.environ.get("K4_POSTGRES_IMAGE"):
            kwargs["postgres_image"] = os.environ["K4_POSTGRES_IMAGE"]
        if os.environ.get("K4_REDIS_IMAGE"):
            kwargs["redis_image"] = os.environ["K4_REDIS_IMAGE"]
        skip = os.environ.get("K4_SKIP_COMMANDS", "").strip().lower()
        if skip in _TRUTHY:
            kwargs["run_commands"] = False
        return cls(**kwargs)
