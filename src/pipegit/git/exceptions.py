"""Custom exceptions for the git wrapper."""

from __future__ import annotations


class GitError(Exception):
    """Base exception for git wrapper errors."""


class GitCommandError(GitError):
    """A git command exited with a non-zero code."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "") -> None:
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr
        message = f"git {' '.join(args)} failed with exit code {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class RetriesExhaustedError(GitError):
    """An authenticated git call kept failing after all retries."""

    def __init__(self, retries: int, returncode: int, stderr: str = "") -> None:
        self.retries = retries
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Unable to execute git call. Retried {retries} times. Last error code: {returncode}"
        )


class PagesSourceNotFoundError(GitError):
    """The folder to publish to GitHub Pages does not exist."""

    def __init__(self, folder: str) -> None:
        self.folder = folder
        super().__init__(f"Folder to publish not found: {folder}")
