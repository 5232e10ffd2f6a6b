"""Sh - Runs commands the way a pipeline `sh` step does."""

from __future__ import annotations

import os
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from pipegit.logging import get_logger, sanitize_for_log, truncate_output
from pipegit.shell.exceptions import CommandFailedError, CommandNotFoundError
from pipegit.shell.models import CommandResult

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

logger = get_logger("shell")


class Sh:
    """Executes commands in a working directory with a scoped environment.

    Commands are argument lists and never go through a shell. The process
    environment is `os.environ` overlaid with the variables set through
    `with_env`, so scoped variables never leak into the parent process.
    """

    def __init__(
        self,
        cwd: str | Path = ".",
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the shell.

        Args:
            cwd: Working directory for all commands.
            env: Initial environment overlay.
        """
        self.cwd = Path(cwd)
        self._env: dict[str, str] = dict(env or {})

    @property
    def env(self) -> dict[str, str]:
        """A copy of the current environment overlay."""
        return dict(self._env)

    def _process_env(self) -> dict[str, str]:
        return {**os.environ, **self._env}

    def execute(self, args: Sequence[str]) -> CommandResult:
        """Run a command and capture its result without checking the exit code.

        Args:
            args: Command and arguments.

        Returns:
            CommandResult with exit code and captured output.

        Raises:
            CommandNotFoundError: If the executable does not exist.
        """
        args = [str(arg) for arg in args]
        logger.debug("Running in %s: %s", self.cwd, sanitize_for_log(" ".join(args)))
        try:
            completed = subprocess.run(
                args,
                cwd=self.cwd,
                env=self._process_env(),
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(f"Command not found: {args[0]}") from e

        result = CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.ok:
            logger.debug(
                "Exit code %d: %s",
                result.returncode,
                sanitize_for_log(truncate_output(result.stderr.strip())),
            )
        return result

    def run(self, args: Sequence[str]) -> str:
        """Run a command, failing on a non-zero exit code.

        Args:
            args: Command and arguments.

        Returns:
            Command stdout, stripped.

        Raises:
            CommandFailedError: If the command exits with a non-zero code.
        """
        result = self.execute(args)
        if not result.ok:
            raise CommandFailedError(result)
        return result.stdout.strip()

    def return_status(self, args: Sequence[str]) -> int:
        """Run a command and return its exit code."""
        return self.execute(args).returncode

    def return_stdout(self, args: Sequence[str]) -> str:
        """Run a command and return its single-line stdout.

        The trailing newline and surrounding whitespace are stripped.

        Raises:
            CommandFailedError: If the command exits with a non-zero code.
        """
        return self.run(args)

    @contextmanager
    def with_env(self, variables: Mapping[str, str]) -> Iterator[None]:
        """Set environment variables for the enclosed commands.

        Prior values are restored on exit, and variables that were not set
        before are removed again.

        Args:
            variables: Variables to set.
        """
        previous = {name: self._env.get(name) for name in variables}
        self._env.update({name: str(value) for name, value in variables.items()})
        try:
            yield
        finally:
            for name, value in previous.items():
                if value is None:
                    self._env.pop(name, None)
                else:
                    self._env[name] = value

    @contextmanager
    def with_dir(self, path: str | Path) -> Iterator[Path]:
        """Run the enclosed commands in another directory.

        Relative paths are resolved against the current working directory.
        The directory is created if it does not exist.

        Args:
            path: Directory to switch to.

        Yields:
            The directory commands now run in.
        """
        previous = self.cwd
        self.cwd = previous / path
        self.cwd.mkdir(parents=True, exist_ok=True)
        try:
            yield self.cwd
        finally:
            self.cwd = previous

    def echo(self, message: str) -> None:
        """Print a message to the pipeline log."""
        logger.info("%s", message)
