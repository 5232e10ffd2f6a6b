"""CredentialStore - Looks up username/password credentials by id."""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING

from pipegit.credentials.exceptions import CredentialsNotFoundError
from pipegit.credentials.models import UsernamePassword
from pipegit.logging import get_logger, register_secret, unregister_secret

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from pipegit.shell import Sh

logger = get_logger("credentials")

USERNAME_SUFFIX = "_USR"
PASSWORD_SUFFIX = "_PSW"


def env_prefix(credentials_id: str) -> str:
    """Environment variable prefix for a credentials id.

    `github-ci.token` becomes `GITHUB_CI_TOKEN`.
    """
    return re.sub(r"[^A-Za-z0-9]", "_", credentials_id).upper()


class CredentialStore:
    """Resolves credentials ids to username/password pairs.

    Credentials registered in code take precedence. Otherwise the pair is
    read from `<PREFIX>_USR` and `<PREFIX>_PSW`, the variable names CI
    systems conventionally use for bound username/password credentials.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """Initialize the store.

        Args:
            environ: Environment to read credentials from (default: os.environ).
        """
        self._environ = environ
        self._registered: dict[str, UsernamePassword] = {}

    def register(self, credentials_id: str, username: str, password: str) -> None:
        """Register credentials under an id."""
        self._registered[credentials_id] = UsernamePassword(username, password)

    def get(self, credentials_id: str) -> UsernamePassword:
        """Look up the username/password pair for a credentials id.

        Raises:
            CredentialsNotFoundError: If no complete pair is available.
        """
        if credentials_id in self._registered:
            return self._registered[credentials_id]

        environ = os.environ if self._environ is None else self._environ
        prefix = env_prefix(credentials_id)
        username = environ.get(prefix + USERNAME_SUFFIX)
        password = environ.get(prefix + PASSWORD_SUFFIX)
        if username is None or password is None:
            raise CredentialsNotFoundError(
                f"No credentials found for '{credentials_id}': "
                f"set {prefix}{USERNAME_SUFFIX} and {prefix}{PASSWORD_SUFFIX}"
            )
        return UsernamePassword(username, password)

    @contextmanager
    def bind(
        self,
        sh: Sh,
        credentials_id: str,
        username_variable: str = "GIT_AUTH_USR",
        password_variable: str = "GIT_AUTH_PSW",
    ) -> Iterator[UsernamePassword]:
        """Expose credentials as environment variables of the enclosed commands.

        The password is masked in log output while bound.

        Args:
            sh: Shell whose environment receives the variables.
            credentials_id: Id of the credentials to bind.
            username_variable: Variable name for the username.
            password_variable: Variable name for the password.

        Yields:
            The bound credentials.
        """
        credentials = self.get(credentials_id)
        logger.debug("Binding credentials '%s' (user %s)", credentials_id, credentials.username)
        register_secret(credentials.password)
        try:
            with sh.with_env(
                {
                    username_variable: credentials.username,
                    password_variable: credentials.password,
                }
            ):
                yield credentials
        finally:
            unregister_secret(credentials.password)
