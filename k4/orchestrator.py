"""Sequential execution of external commands against a materialized tree.

The orchestrator runs package managers, generators, formatters and git one
after another. Each child inherits the terminal so installers can show live
progress, and the first required command that fails stops the sequence.
Nothing is rolled back: the files already written stay on disk so the user
can fix the cause and resume by hand.
"""

from __future__ import annotations

import asyncio
import re
import shlex
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel, Field

from k4.errors import ExternalCommandFailed
from k4.utils import (
    console,
    format_duration,
    print_error,
    print_step,
    print_warning,
    run_command,
)

# Shell convention for "command not found" / "not executable".
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126

_VERSION_RE = re.compile(r"(?<![\d.])(\d+\.\d+\.\d+)(?![\d.])")


class ExternalCommand(BaseModel):
    """One process invocation, resolved against the orchestrator root."""

    argv: list[str] = Field(..., min_length=1)
    cwd: str = Field(default=".", description="Working directory relative to the root")
    allow_failure: bool = Field(default=False)

    def display(self) -> str:
        """Return the command as a copy-pasteable shell line."""
        line = shlex.join(self.argv)
        if self.cwd not in ("", "."):
            return f"(cd {shlex.quote(self.cwd)} && {line})"
        return line


@dataclass
class OrchestrationResult:
    """Outcome of :meth:`CommandOrchestrator.run`."""

    commands_run: list[ExternalCommand] = field(default_factory=list)
    failed_at: int | None = None
    exit_code: int = 0
    warnings: list[str] = field(default_factory=list)
    remaining: list[ExternalCommand] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failed_at is None

    def raise_for_failure(self) -> None:
        """Raise ``ExternalCommandFailed`` if the run stopped on a failure."""
        if self.failed_at is not None:
            raise ExternalCommandFailed(
                self.commands_run[-1], self.failed_at, self.exit_code
            )


class CommandOrchestrator:
    """Runs :class:`ExternalCommand` sequences inside a fixed root directory.

    The root is explicit: commands never depend on the process working
    directory, so several orchestrators can coexist in one process.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def resolve_cwd(self, command: ExternalCommand) -> Path:
        return self.root / command.cwd

    async def run(self, commands: Sequence[ExternalCommand]) -> OrchestrationResult:
        """Execute *commands* strictly in order with fail-fast semantics.

        A command with ``allow_failure`` that exits non-zero only produces a
        warning. Any other non-zero exit stops the sequence; the returned
        result then records ``failed_at`` (index into *commands*), the exit
        code, and the commands that were not run.
        """
        result = OrchestrationResult()
        total = len(commands)

        for index, command in enumerate(commands):
            print_step(index + 1, total, command.display())
            started = time.monotonic()
            exit_code = await self._execute(command)
            elapsed = format_duration(time.monotonic() - started)
            result.commands_run.append(command)

            if exit_code == 0:
                console.print(f"[green]done[/green] [dim]({elapsed})[/dim]")
                continue

            if command.allow_failure:
                message = (
                    f"Ignoring failure of optional command (exit {exit_code}): "
                    f"{command.display()}"
                )
                print_warning(message)
                result.warnings.append(message)
                continue

            result.failed_at = index
            result.exit_code = exit_code
            result.remaining = list(commands[index + 1:])
            self._report_failure(result, command)
            return result

        return result

    async def probe(self, command: ExternalCommand, fallback: str) -> str:
        """Best-effort version probe.

        Runs *command* with captured output and returns the first ``X.Y.Z``
        version it prints. Any failure (missing executable, non-zero exit,
        timeout, unparseable output) is absorbed: a warning is printed and
        *fallback* is returned instead.
        """
        reason: str
        try:
            returncode, stdout, stderr = await run_command(
                command.argv, cwd=self.resolve_cwd(command)
            )
        except OSError as exc:
            reason = f"could not start {command.argv[0]!r} ({exc.strerror or exc})"
        else:
            match = _VERSION_RE.search(stdout)
            if returncode == 0 and match:
                return match.group(1)
            if returncode != 0:
                reason = f"exit {returncode}" + (f": {stderr}" if stderr else "")
            else:
                reason = f"no version in output {stdout!r}"

        print_warning(
            f"Could not determine version via `{command.display()}` ({reason}); "
            f"using {fallback}."
        )
        return fallback

    # -- Internals -----------------------------------------------------------

    async def _execute(self, command: ExternalCommand) -> int:
        """Run one command with inherited stdio and return its exit code."""
        cwd = self.resolve_cwd(command)
        if not cwd.is_dir():
            print_error(f"Working directory does not exist: {cwd}")
            return 1
        try:
            process = await asyncio.create_subprocess_exec(*command.argv, cwd=str(cwd))
        except FileNotFoundError:
            print_error(f"Executable not found: {command.argv[0]}")
            return EXIT_NOT_FOUND
        except PermissionError:
            print_error(f"Executable is not runnable: {command.argv[0]}")
            return EXIT_NOT_EXECUTABLE
        except OSError as exc:
            print_error(f"Could not start {command.argv[0]}: {exc}")
            return 1
        return await process.wait()

    def _report_failure(self, result: OrchestrationResult, command: ExternalCommand) -> None:
        print_error(
            f"Command failed with exit code {result.exit_code}: {command.display()}"
        )
        console.print(
            f"Files already written under [bold]{self.root}[/bold] were left in place."
        )
        if result.remaining:
            console.print("Fix the problem above, then finish the setup manually:")
            console.print(f"  cd {shlex.quote(str(self.root))}")
            console.print(f"  {command.display()}", markup=False)
            for pending in result.remaining:
                console.print(f"  {pending.display()}", markup=False)
        else:
            console.print("Fix the problem above and re-run the failed command.")
