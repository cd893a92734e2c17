"""Remediation command runner.

Runs the configured command through ``sh -c`` and blocks until it exits.
No timeout is applied: a command that hangs stalls the watchdog.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass

from .models import Command

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandError(Exception):
    """Raised when the command cannot be started or exits non-zero."""

    def __init__(self, message: str, result: CommandResult) -> None:
        self.result = result
        super().__init__(message)


def run_command(command: Command) -> CommandResult:
    """Run the remediation command. Raises CommandError unless it exits 0."""
    cwd = str(command.working_dir) if command.working_dir else None

    logger.info("Running command: %s", command.command)
    t0 = time.perf_counter()
    try:
        proc = subprocess.run(
            ["sh", "-c", command.command],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        duration_ms = int((time.perf_counter() - t0) * 1000)
        result = CommandResult(
            exit_code=-1,
            stdout="",
            stderr=f"{type(e).__name__}: {e}",
            duration_ms=duration_ms,
        )
        raise CommandError(f"Could not start command: {e}", result) from e

    duration_ms = int((time.perf_counter() - t0) * 1000)
    result = CommandResult(
        exit_code=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        duration_ms=duration_ms,
    )
    logger.debug("Command output (exit %d): stdout=%r stderr=%r", result.exit_code, result.stdout, result.stderr)

    if not result.ok:
        raise CommandError(f"Non-zero exit of command: {result.exit_code}", result)

    logger.info("Command executed successfully (%dms)", duration_ms)
    return result
