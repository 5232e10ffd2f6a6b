"""Shell - Runs commands for pipeline steps."""

from pipegit.shell.exceptions import CommandFailedError, CommandNotFoundError, ShellError
from pipegit.shell.models import CommandResult
from pipegit.shell.sh import Sh

__all__ = [
    "CommandFailedError",
    "CommandNotFoundError",
    "CommandResult",
    "Sh",
    "ShellError",
]
