"""Shared pytest fixtures for the k4 test suite.

Provides reusable fixtures for:
- Configurations with and without command execution
- A recording stand-in for ``asyncio.create_subprocess_exec``
- An initialized workspace on disk
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from k4.config import Config
from k4.scaffolder.templates import TemplateRegistry, default_registry


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> Config:
    """Default configuration (commands run, through the fake subprocess)."""
    return Config()


@pytest.fixture
def offline_config() -> Config:
    """Configuration that writes files but skips the command plan."""
    return Config(run_commands=False)


@pytest.fixture
def registry() -> TemplateRegistry:
    return default_registry()


# ---------------------------------------------------------------------------
# Fake subprocesses
# ---------------------------------------------------------------------------

class FakeProcesses:
    """Callable replacement for ``asyncio.create_subprocess_exec``.

    Records every invocation and answers with configurable exit codes and
    stdout.  Rules match on an argv prefix; the first matching rule wins.

    Usage:
        def test_something(fake_processes):
            fake_processes.fail(["pnpm", "install"], returncode=1)
            fake_processes.output(["pnpm", "--version"], "9.12.3\\n")
            fake_processes.missing("npx")
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], str | None]] = []
        self._exit_codes: list[tuple[list[str], int]] = []
        self._stdout: list[tuple[list[str], str]] = []
        self._missing: set[str] = set()

    # -- configuration ---------------------------------------------------------

    def fail(self, prefix: list[str], returncode: int = 1) -> None:
        self._exit_codes.append((prefix, returncode))

    def output(self, prefix: list[str], stdout: str) -> None:
        self._stdout.append((prefix, stdout))

    def missing(self, executable: str) -> None:
        self._missing.add(executable)

    # -- inspection ------------------------------------------------------------

    @property
    def argvs(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]

    # -- the fake --------------------------------------------------------------

    def __call__(self, *argv: str, **kwargs: Any) -> MagicMock:
        args = list(argv)
        self.calls.append((args, kwargs.get("cwd")))
        if args[0] in self._missing:
            raise FileNotFoundError(2, "No such file or directory", args[0])

        returncode = _first_match(self._exit_codes, args, 0)
        stdout = _first_match(self._stdout, args, "")

        process = MagicMock()
        process.returncode = returncode
        process.pid = 4242
        process.wait = AsyncMock(return_value=returncode)
        process.communicate = AsyncMock(return_value=(stdout.encode("utf-8"), b""))
        process.kill = MagicMock()
        return process


def _first_match(rules: list[tuple[list[str], Any]], argv: list[str], default: Any) -> Any:
    for prefix, value in rules:
        if argv[: len(prefix)] == prefix:
            return value
    return default


@pytest.fixture
def fake_processes():
    """Patch ``asyncio.create_subprocess_exec`` with a :class:`FakeProcesses`."""
    fake = FakeProcesses()
    with patch("asyncio.create_subprocess_exec", side_effect=fake):
        yield fake


# ---------------------------------------------------------------------------
# Workspaces on disk
# ---------------------------------------------------------------------------

@pytest.fixture
async def workspace_root(tmp_path: Path, offline_config: Config, fake_processes) -> Path:
    """An initialized ``demo-app`` workspace (no commands executed)."""
    from k4.scaffolder.workspace import init_workspace

    result = await init_workspace("demo-app", tmp_path, offline_config)
    return result.root
