"""pipegit - Credential-aware git steps for CI pipelines."""

__version__ = "0.1.0"

from pipegit.config import GitSettings  # noqa: E402
from pipegit.credentials import CredentialStore, CredentialsNotFoundError  # noqa: E402
from pipegit.git import (  # noqa: E402
    Author,
    Git,
    GitCommandError,
    GitError,
    RetriesExhaustedError,
)
from pipegit.shell import Sh  # noqa: E402

__all__ = [
    "Author",
    "CredentialStore",
    "CredentialsNotFoundError",
    "Git",
    "GitCommandError",
    "GitError",
    "GitSettings",
    "RetriesExhaustedError",
    "Sh",
    "__version__",
]
