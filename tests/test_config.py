"""Unit tests for Config (k4.config).

Tests cover:
- Defaults
- Scope and fallback version validation
- package_name
- from_env
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from k4.config import FALLBACK_PNPM_VERSION, Config


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


class TestConfigDefaults:
    @pytest.mark.unit
    def test_defaults(self):
        config = Config()
        assert config.scope == "@repo"
        assert config.package_manager == "pnpm"
        assert config.fallback_pnpm_version == FALLBACK_PNPM_VERSION == "9.0.0"
        assert config.run_commands is True
        assert config.postgres_image == "postgres:16"
        assert config.redis_image == "redis:6.2-alpine"

    @pytest.mark.unit
    def test_package_name(self):
        assert Config().package_name("db") == "@repo/db"
        assert Config(scope="@acme").package_name("queue") == "@acme/queue"

    @pytest.mark.unit
    @pytest.mark.parametrize("scope", ["repo", "@", "@Repo", "@re po", ""])
    def test_invalid_scope(self, scope):
        with pytest.raises(ValidationError):
            Config(scope=scope)

    @pytest.mark.unit
    @pytest.mark.parametrize("version", ["9", "9.0", "v9.0.0", "latest"])
    def test_invalid_fallback_version(self, version):
        with pytest.raises(ValidationError):
            Config(fallback_pnpm_version=version)


# ---------------------------------------------------------------------------
# Config.from_env
# ---------------------------------------------------------------------------


class TestConfigFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()
        assert config == Config()

    @pytest.mark.unit
    def test_scope_from_env(self):
        with patch.dict(os.environ, {"K4_SCOPE": "@acme"}, clear=True):
            config = Config.from_env()
        assert config.scope == "@acme"

    @pytest.mark.unit
    def test_images_from_env(self):
        env = {"K4_POSTGRES_IMAGE": "postgres:17", "K4_REDIS_IMAGE": "redis:7"}
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.postgres_image == "postgres:17"
        assert config.redis_image == "redis:7"

    @pytest.mark.unit
    def test_fallback_version_from_env(self):
        with patch.dict(os.environ, {"K4_FALLBACK_PNPM_VERSION": "8.15.9"}, clear=True):
            config = Config.from_env()
        assert config.fallback_pnpm_version == "8.15.9"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_skip_commands(self, value):
        with patch.dict(os.environ, {"K4_SKIP_COMMANDS": value}, clear=True):
            config = Config.from_env()
        assert config.run_commands is False

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["0", "false", "", "nope"])
    def test_skip_commands_falsy(self, value):
        with patch.dict(os.environ, {"K4_SKIP_COMMANDS": value}, clear=True):
            config = Config.from_env()
        assert config.run_commands is True

    @pytest.mark.unit
    def test_invalid_scope_from_env(self):
        with patch.dict(os.environ, {"K4_SCOPE": "acme"}, clear=True):
            with pytest.raises(ValidationError):
                Config.from_env()
