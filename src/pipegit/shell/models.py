"""Data models for the shell facility."""

import shlex
from dataclasses import dataclass


@dataclass
class CommandResult:
    """Outcome of a single command execution.

    Attributes:
        args: The argument list that was executed.
        returncode: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        """The argument list rendered as a shell-quoted string."""
        return shlex.join(self.args)
