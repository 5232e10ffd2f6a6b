"""Data models for credentials."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UsernamePassword:
    """A username/password pair.

    The password is left out of the repr so it never ends up in logs.
    """

    username: str
    password: str = field(repr=False)
