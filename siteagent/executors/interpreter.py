"""Command interpreter: heredoc file writes vs. opaque shell commands."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from siteagent.executors.shell_runner import (
    DEFAULT_SHELL,
    CommandError,
    execute_shell,
)
from siteagent.schemas import Command, CommandOutcome, FileWrite, ShellInvocation

logger = logging.getLogger(__name__)

# cat <<EOF > path\n...content...\nEOF  (delimiter optionally quoted)
# ">>" appends and "<<-" tab-stripping heredocs are left to the shell
HEREDOC_PATTERN = re.compile(
    r"\Acat[ \t]*<<[ \t]*(['\"]?)(?P<tag>[A-Za-z_][A-Za-z0-9_]*)\1"
    r"[ \t]*>(?!>)[ \t]*(?P<path>[^\n]*)\n"
    r"(?P<content>.*?)\n"
    r"(?P=tag)\Z",
    re.DOTALL,
)


class FileWriteError(Exception):
    """Raised when a heredoc target cannot be written."""

    pass


class PathEscapeError(FileWriteError):
    """Raised when a heredoc target resolves outside the output root."""

    pass


def _unquote(path: str) -> str:
    path = path.strip()
    if len(path) >= 2 and path[0] == path[-1] and path[0] in "'\"":
        return path[1:-1]
    return path


def parse_command(command: str) -> Command:
    """Classify a command string as a heredoc file write or a shell invocation.

    Args:
        command: A single logical shell command

    Returns:
        FileWrite with the verbatim path and content, or ShellInvocation
        carrying the original string unmodified
    """
    match = HEREDOC_PATTERN.match(command.strip())
    if match is None:
        return ShellInvocation(text=command)
    return FileWrite(path=_unquote(match.group("path")), content=match.group("content"))


def _resolve_target(path: str, work_dir: Path, output_root: Path | None) -> Path:
    """Resolve the target path, enforcing containment when a root is given."""
    if not path.strip():
        raise FileWriteError("Heredoc target path is empty")

    target = Path(path)
    if not target.is_absolute():
        target = work_dir / target

    if output_root is not None:
        root = output_root if output_root.is_absolute() else work_dir / output_root
        resolved = target.resolve()
        if not resolved.is_relative_to(root.resolve()):
            raise PathEscapeError(f"{path} is outside the output directory {root}")

    return target


def write_file(
    write: FileWrite,
    work_dir: str | Path | None = None,
    output_root: str | Path | None = None,
) -> Path:
    """Write heredoc content to its target, creating parent directories.

    Raises:
        FileWriteError: On an empty path or any filesystem failure
        PathEscapeError: If output_root is given and the target is outside it
    """
    base = Path(work_dir) if work_dir else Path.cwd()
    root = Path(output_root) if output_root is not None else None
    target = _resolve_target(write.path, base, root)

    # Encode before touching the target so a bad payload leaves it intact
    try:
        data = write.content.encode("utf-8")
    except UnicodeEncodeError as e:
        raise FileWriteError(f"Content is not valid UTF-8: {e.reason}") from e

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as e:
        raise FileWriteError(f"Failed to write file: {e.strerror or e}") from e

    logger.info(f"File written to: {write.path}")
    return target


def execute_command(
    command: str,
    work_dir: str | Path | None = None,
    shell_path: str = DEFAULT_SHELL,
    timeout_seconds: float | None = None,
    output_root: str | Path | None = None,
) -> CommandOutcome:
    """Interpret and execute one command string.

    Args:
        command: The requested command
        work_dir: Directory relative paths and the shell are resolved against
        shell_path: Interpreter used for non-heredoc commands
        timeout_seconds: Optional shell timeout
        output_root: If given, heredoc targets must resolve inside it

    Returns:
        CommandOutcome tagged success or failure
    """
    parsed = parse_command(command)

    if isinstance(parsed, FileWrite):
        try:
            write_file(parsed, work_dir=work_dir, output_root=output_root)
        except FileWriteError as e:
            logger.warning(f"File write failed: {e}")
            return CommandOutcome.failure(type(e).__name__, str(e))
        return CommandOutcome.success(parsed.path, written_path=parsed.path)

    try:
        stdout = execute_shell(
            parsed.text,
            work_dir=work_dir,
            shell_path=shell_path,
            timeout_seconds=timeout_seconds,
        )
    except CommandError as e:
        logger.warning(f"Command failed: {e}")
        return CommandOutcome.failure("CommandError", str(e))
    return CommandOutcome.success(stdout)


class CommandInterpreter:
    """Command interpreter bound to one set of execution settings."""

    def __init__(
        self,
        work_dir: str | Path | None = None,
        shell_path: str = DEFAULT_SHELL,
        timeout_seconds: float | None = None,
        output_root: str | Path | None = None,
    ):
        self.work_dir = Path(work_dir) if work_dir else Path.cwd()
        self.shell_path = shell_path
        self.timeout_seconds = timeout_seconds
        self.output_root = output_root

    @classmethod
    def from_settings(cls, settings) -> CommandInterpreter:
        return cls(
            work_dir=settings.work_dir,
            shell_path=settings.shell_path,
            timeout_seconds=settings.command_timeout,
            output_root=settings.output_root if settings.restrict_writes else None,
        )

    def __call__(self, command: str) -> CommandOutcome:
        return execute_command(
            command,
            work_dir=self.work_dir,
            shell_path=self.shell_path,
            timeout_seconds=self.timeout_seconds,
            output_root=self.output_root,
        )
