"""Shell runner: executes command strings through a fixed shell interpreter."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from pydantic import BaseModel

from siteagent.config import DEFAULT_MAX_OUTPUT_BYTES, default_shell

logger = logging.getLogger(__name__)

DEFAULT_SHELL = default_shell()


class CommandError(Exception):
    """Raised when a shell command fails to launch, fails, or writes to stderr."""

    pass


class ShellResult(BaseModel):
    """Captured result of one shell command."""

    stdout: str
    stderr: str
    exit_code: int
    command_executed: str


def truncate_output(output: str, max_bytes: int = DEFAULT_MAX_OUTPUT_BYTES) -> str:
    """Truncate output to max_bytes."""
    if len(output.encode("utf-8", errors="replace")) <= max_bytes:
        return output

    # Truncate by bytes, preserving valid UTF-8
    encoded = output.encode("utf-8", errors="replace")[:max_bytes]
    truncated = encoded.decode("utf-8", errors="ignore")
    return truncated + "\n... [output truncated]"


def run_shell(
    command: str,
    work_dir: str | Path | None = None,
    shell_path: str = DEFAULT_SHELL,
    timeout_seconds: float | None = None,
) -> ShellResult:
    """Run a command string with shell interpretation.

    The full parent environment is forwarded. No timeout applies unless
    `timeout_seconds` is given.

    Args:
        command: The command to execute, passed to the shell unmodified
        work_dir: Working directory (defaults to current directory)
        shell_path: Interpreter used for `-c`
        timeout_seconds: Optional timeout in seconds

    Returns:
        ShellResult with stdout, stderr and exit code

    Raises:
        CommandError: If the process cannot be started or times out
    """
    work_dir = str(work_dir or Path.cwd())

    logger.info(f"Executing command: {command} (shell: {shell_path})")

    try:
        result = subprocess.run(
            command,
            shell=True,
            executable=shell_path,
            capture_output=True,
            text=True,
            errors="replace",
            cwd=work_dir,
            env=os.environ.copy(),
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Command timed out after {timeout_seconds}s: {command}")
        raise CommandError(f"Command timed out after {timeout_seconds} seconds") from e
    except (OSError, ValueError) as e:
        # ValueError covers unencodable text and embedded null bytes
        logger.error(f"Command execution failed: {e}")
        raise CommandError(str(e)) from e

    return ShellResult(
        stdout=result.stdout,
        stderr=result.stderr,
        exit_code=result.returncode,
        command_executed=command,
    )


def execute_shell(
    command: str,
    work_dir: str | Path | None = None,
    shell_path: str = DEFAULT_SHELL,
    timeout_seconds: float | None = None,
) -> str:
    """Run a command and return its stdout, or raise CommandError.

    Any output on stderr counts as failure, even with a zero exit code.
    """
    result = run_shell(
        command,
        work_dir=work_dir,
        shell_path=shell_path,
        timeout_seconds=timeout_seconds,
    )

    if result.stderr:
        raise CommandError(result.stderr)
    if result.exit_code != 0:
        raise CommandError(f"Command exited with status {result.exit_code}")
    return result.stdout
