"""Custom exceptions for the shell facility."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pipegit.shell.models import CommandResult


class ShellError(Exception):
    """Base exception for shell errors."""


class CommandNotFoundError(ShellError):
    """The executable of a command could not be found."""


class CommandFailedError(ShellError):
    """A command exited with a non-zero status."""

    def __init__(self, result: CommandResult) -> None:
        self.result = result
        message = f"Command '{result.command_line}' failed with exit code {result.returncode}"
        if result.stderr.strip():
            message += f": {result.stderr.strip()}"
        super().__init__(message)

    @property
    def returncode(self) -> int:
        return self.result.returncode

    @property
    def stderr(self) -> str:
        return self.result.stderr
