"""Command runners used by RUN_COMMAND actions."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


@runtime_checkable
class CommandRunner(Protocol):
    """Anything that can run a shell command in a directory and report how it exited."""

    def run(self, command: str, cwd: Path) -> CommandResult: ...


@dataclass
class DryRunCommandRunner:
    """Records commands instead of running them; every command 'succeeds'."""

    commands: list[tuple[str, Path]] = field(default_factory=list)

    def run(self, command: str, cwd: Path) -> CommandResult:
        self.commands.append((command, cwd))
        logger.info(f"Dry run: would run '{command}' in '{cwd}'")
        return CommandResult(exit_code=0)


class SubprocessCommandRunner:
    """Runs commands through the system shell and waits for them to finish."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def run(self, command: str, cwd: Path) -> CommandResult:
        logger.info(f"Running '{command}' in '{cwd}'")
        completed = subprocess.run(  # noqa: S602
            command,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )
        logger.debug(f"'{command}' exited with code {completed.returncode}")
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")
