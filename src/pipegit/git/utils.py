"""Helpers for refspecs and repository URLs."""

from __future__ import annotations


def add_origin_when_missing(refspec: str, remote: str = "origin") -> str:
    """Prefix a refspec with the remote unless it already names one.

    Empty refspecs, refspecs with more than one word (e.g. `upstream main`)
    and the bare remote name are returned unchanged.

    >>> add_origin_when_missing("main")
    'origin main'
    >>> add_origin_when_missing("upstream main")
    'upstream main'
    """
    if not refspec or len(refspec.split()) > 1 or refspec.strip() == remote:
        return refspec
    return f"{remote} {refspec}"


def parse_repository_name(url: str) -> str:
    """Derive `owner/repo` from a remote URL.

    Handles `https://host/owner/repo.git` and `git@host:owner/repo.git`.
    """
    repo_url = url.replace("https://", "").replace(".git", "")
    if repo_url.startswith("git@"):
        return repo_url[repo_url.index(":") + 1 :] if ":" in repo_url else repo_url
    return repo_url[repo_url.index("/") + 1 :] if "/" in repo_url else repo_url
