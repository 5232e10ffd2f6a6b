"""Data models for the git wrapper."""

from __future__ import annotations

import re
from dataclasses import dataclass

_AUTHOR_PATTERN = re.compile(r"^(?P<name>.*?)\s*<(?P<email>.*?)>")


@dataclass(frozen=True)
class Author:
    """Name and email used as both author and committer."""

    name: str
    email: str

    @classmethod
    def parse(cls, line: str) -> Author:
        """Parse `User Name <user.name@doma.in>`.

        A line without an email yields the whole line as name and an empty email.
        """
        match = _AUTHOR_PATTERN.match(line.strip())
        if match is None:
            return cls(name=line.strip(), email="")
        return cls(name=match.group("name"), email=match.group("email"))

    def env(self) -> dict[str, str]:
        """Environment variables that make git use this identity."""
        return {
            "GIT_AUTHOR_NAME": self.name,
            "GIT_AUTHOR_EMAIL": self.email,
            "GIT_COMMITTER_NAME": self.name,
            "GIT_COMMITTER_EMAIL": self.email,
        }

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"
