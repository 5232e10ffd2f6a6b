"""Credentials - Resolves and binds username/password credentials."""

from pipegit.credentials.exceptions import CredentialsError, CredentialsNotFoundError
from pipegit.credentials.models import UsernamePassword
from pipegit.credentials.store import CredentialStore, env_prefix

__all__ = [
    "CredentialStore",
    "CredentialsError",
    "CredentialsNotFoundError",
    "UsernamePassword",
    "env_prefix",
]
