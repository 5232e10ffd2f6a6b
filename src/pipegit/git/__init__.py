"""Git - Credential-aware git operations for pipeline scripts."""

from pipegit.git.exceptions import (
    GitCommandError,
    GitError,
    PagesSourceNotFoundError,
    RetriesExhaustedError,
)
from pipegit.git.git import Git
from pipegit.git.models import Author
from pipegit.git.utils import add_origin_when_missing, parse_repository_name

__all__ = [
    "Author",
    "Git",
    "GitCommandError",
    "GitError",
    "PagesSourceNotFoundError",
    "RetriesExhaustedError",
    "add_origin_when_missing",
    "parse_repository_name",
]
