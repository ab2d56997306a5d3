"""Executors behind the executeCommand tool."""

from siteagent.executors.interpreter import CommandInterpreter, execute_command, parse_command
from siteagent.executors.shell_runner import execute_shell, run_shell

__all__ = ["CommandInterpreter", "execute_command", "parse_command", "execute_shell", "run_shell"]
