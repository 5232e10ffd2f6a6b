"""Git - Credential-aware wrapper around the git command line."""

from __future__ import annotations

import os
import re
import shlex
import shutil
import time
import warnings
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pipegit.config import GitSettings
from pipegit.credentials import CredentialStore
from pipegit.git.exceptions import (
    GitCommandError,
    PagesSourceNotFoundError,
    RetriesExhaustedError,
)
from pipegit.git.models import Author
from pipegit.git.utils import add_origin_when_missing, parse_repository_name
from pipegit.logging import get_logger
from pipegit.shell import CommandFailedError, Sh

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from contextlib import AbstractContextManager

logger = get_logger("git")

# Answers git's credential requests from the variables bound by CredentialStore.bind
CREDENTIAL_HELPER = '!f() { echo username="$GIT_AUTH_USR"; echo password="$GIT_AUTH_PSW"; }; f'

# Environment variables CI systems use for the branch being built, in lookup order
BRANCH_NAME_VARIABLES = ("BRANCH_NAME", "GITHUB_HEAD_REF", "GITHUB_REF_NAME", "CI_COMMIT_REF_NAME")


class Git:
    """Runs git commands for pipeline scripts.

    Network operations (clone, fetch, pull, push) authenticate with the
    configured credentials through a temporary credential helper and are
    retried on failure. Commits, tags and merges can be attributed to an
    explicit author; by default the author of HEAD is used.
    """

    def __init__(
        self,
        repo_path: str | Path = ".",
        credentials: str | None = None,
        *,
        settings: GitSettings | None = None,
        sh: Sh | None = None,
        credential_store: CredentialStore | None = None,
    ) -> None:
        """Initialize the wrapper.

        Args:
            repo_path: Path to the local repository (ignored when `sh` is given).
            credentials: Id of the username/password credentials for remote calls.
            settings: Retry and remote settings (default: GitSettings()).
            sh: Shell to run commands with.
            credential_store: Store resolving `credentials` (default: environment).
        """
        self.settings = settings.model_copy() if settings is not None else GitSettings()
        if credentials is not None:
            self.settings.credentials_id = credentials
        self.sh = sh if sh is not None else Sh(repo_path)
        self.credential_store = (
            credential_store if credential_store is not None else CredentialStore()
        )

    @property
    def credentials(self) -> str | None:
        return self.settings.credentials_id

    @property
    def retry_timeout(self) -> int:
        """Milliseconds to wait between retries of authenticated calls."""
        return self.settings.retry_timeout

    @retry_timeout.setter
    def retry_timeout(self, value: int) -> None:
        self.settings.retry_timeout = value

    @property
    def max_retries(self) -> int:
        """Maximum number of attempts for authenticated calls."""
        return self.settings.max_retries

    @max_retries.setter
    def max_retries(self, value: int) -> None:
        self.settings.max_retries = value

    def set_retry_timeout(self, retry_timeout: int) -> None:
        """Set the timeout between retries in milliseconds (default: 500)."""
        self.retry_timeout = retry_timeout

    def set_max_retries(self, max_retries: int) -> None:
        """Set the maximum number of retries (default: 5)."""
        self.max_retries = max_retries

    def _run_git(self, *args: str) -> str:
        """Run a git command in the repo directory.

        Args:
            *args: Git command arguments

        Returns:
            Command stdout, stripped

        Raises:
            GitCommandError: If command fails
        """
        try:
            return self.sh.run(["git", *args])
        except CommandFailedError as e:
            raise GitCommandError(list(args), e.returncode, e.stderr) from e

    def __call__(self, args: str | Mapping[str, Any]) -> None:
        """Check out a remote repository, like the pipeline `git` step.

        Args:
            args: Repository URL, or a mapping with `url` and optionally
                  `branch` and `credentials_id`. The configured credentials
                  are used unless the mapping names its own.
        """
        options: dict[str, Any] = {"url": args} if isinstance(args, str) else dict(args)
        if self.credentials is not None:
            options.setdefault("credentials_id", self.credentials)
        self.clone(**options)

    def clone(
        self,
        url: str,
        branch: str | None = None,
        credentials_id: str | None = None,
    ) -> None:
        """Check out `url` into the working directory.

        An empty directory is cloned into. An existing repository gets its
        remote pointed at `url`, is fetched and has `branch` checked out
        at the remote state.

        Args:
            url: Repository URL.
            branch: Branch to check out (default: remote HEAD).
            credentials_id: Credentials for the remote (default: configured ones).
        """
        credentials_id = credentials_id if credentials_id is not None else self.credentials
        remote = self.settings.remote

        if not (self.sh.cwd / ".git").exists():
            logger.info("Cloning %s (branch %s)", url, branch or "default")
            args = ["clone"]
            if branch:
                args += ["--branch", branch]
            self._execute_with_credentials([*args, url, "."], credentials_id)
            return

        logger.info("Updating existing checkout from %s (branch %s)", url, branch or "default")
        if self.sh.return_status(["git", "remote", "set-url", remote, url]) != 0:
            self._run_git("remote", "add", remote, url)
        self._execute_with_credentials(["fetch", remote], credentials_id)
        if branch:
            self._run_git("checkout", "-B", branch, f"{remote}/{branch}")

    def clean(self, excludes: str = "") -> None:
        """Remove untracked files and discard unstaged changes.

        Args:
            excludes: Pattern of untracked files to keep.
        """
        args = ["clean", "-df"]
        if excludes:
            args += ["--exclude", excludes]
        self._run_git(*args)
        self._run_git("checkout", "--", ".")

    @property
    def branch_name(self) -> str:
        """Name of the branch being built.

        Taken from the CI environment, falling back to the checked out branch.
        """
        environ = {**os.environ, **self.sh.env}
        for variable in BRANCH_NAME_VARIABLES:
            if environ.get(variable):
                return environ[variable]
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD")

    @property
    def simple_branch_name(self) -> str:
        """The part of the branch name after the last slash."""
        return self.branch_name.rsplit("/", 1)[-1]

    def get_commit_author_complete(self) -> str:
        """Author of HEAD in the form `User Name <user.name@doma.in>`."""
        return self._run_git("--no-pager", "show", "-s", "--format=%an <%ae>", "HEAD")

    def get_commit_author_name(self) -> str:
        return re.sub(r" <.*", "", self.get_commit_author_complete())

    def get_commit_author_email(self) -> str:
        match = re.search(r"<(.*?)>", self.get_commit_author_complete())
        return match.group(1) if match else ""

    def get_commit_message(self) -> str:
        return self._run_git("log", "-1", "--pretty=%B")

    def get_commit_hash(self) -> str:
        return self._run_git("rev-parse", "HEAD")

    def get_commit_hash_short(self) -> str:
        return self._run_git("rev-parse", "--short", "HEAD")

    def get_repository_url(self) -> str:
        """URL of the remote, e.g. `https://github.com/orga/repo.git`."""
        return self._run_git("remote", "get-url", self.settings.remote)

    def get_repository_name(self) -> str:
        """Name of the repository, e.g. `orga/repo`, derived from the remote URL."""
        return parse_repository_name(self.get_repository_url())

    def get_github_repository_name(self) -> str:
        """Name of the GitHub repository, or an empty string for other hosts.

        Deprecated: use get_repository_name().
        """
        warnings.warn(
            "get_github_repository_name() is deprecated, use get_repository_name()",
            DeprecationWarning,
            stacklevel=2,
        )
        repository_url = self.get_repository_url()
        if "github.com" not in repository_url:
            return ""
        return parse_repository_name(repository_url)

    def get_tag(self) -> str:
        """Tag(s) pointing at HEAD, or an empty string."""
        return self._run_git("tag", "--points-at", "HEAD")

    def is_tag(self) -> bool:
        return bool(self.get_tag())

    def add(self, pathspec: str) -> None:
        self._run_git("add", *shlex.split(pathspec))

    def _author(self, author_name: str | None, author_email: str | None) -> Author:
        """Fill in missing identity parts from the author of HEAD."""
        if author_name is not None and author_email is not None:
            return Author(author_name, author_email)
        head_author = Author.parse(self.get_commit_author_complete())
        return Author(
            author_name if author_name is not None else head_author.name,
            author_email if author_email is not None else head_author.email,
        )

    def with_author_and_email(
        self, author_name: str, author_email: str
    ) -> AbstractContextManager[None]:
        """Use an identity as author and committer for the enclosed git calls.

        Sets GIT_AUTHOR_NAME, GIT_AUTHOR_EMAIL, GIT_COMMITTER_NAME and
        GIT_COMMITTER_EMAIL and restores their prior values on exit.
        """
        return self.sh.with_env(Author(author_name, author_email).env())

    def commit(
        self,
        message: str,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> None:
        """Commit staged changes.

        Args:
            message: Commit message.
            author_name: Author and committer name (default: author of HEAD).
            author_email: Author and committer email (default: author of HEAD).
        """
        author = self._author(author_name, author_email)
        logger.info("Committing as %s", author)
        with self.with_author_and_email(author.name, author.email):
            self._run_git("commit", "-m", message)

    def set_tag(
        self,
        tag: str,
        message: str,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> None:
        """Create an annotated tag on HEAD.

        Args:
            tag: Tag name.
            message: Tag message.
            author_name: Tagger name (default: author of HEAD).
            author_email: Tagger email (default: author of HEAD).
        """
        author = self._author(author_name, author_email)
        logger.info("Tagging %s as %s", tag, author)
        with self.with_author_and_email(author.name, author.email):
            self._run_git("tag", "-m", message, tag)

    def fetch(self) -> None:
        """Fetch all remote branches.

        CI checkouts often configure the remote for the built branch only,
        so the fetch refspec is reset to all branches first.
        """
        remote = self.settings.remote
        self._run_git(
            "config", f"remote.{remote}.fetch", f"+refs/heads/*:refs/remotes/{remote}/*"
        )
        self.execute_git_with_credentials(["fetch", "--all"])

    def checkout(self, branch_name: str) -> None:
        """Switch to a branch. Call fetch() first for branches not yet fetched."""
        self._run_git("checkout", branch_name)

    def checkout_or_create(self, branch_name: str) -> None:
        """Switch to a branch, creating it locally if it does not exist."""
        if self.sh.return_status(["git", "checkout", branch_name]) != 0:
            logger.info("Branch %s not found, creating it", branch_name)
            self._run_git("checkout", "-b", branch_name)

    def merge(
        self,
        branch_name: str,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> None:
        """Merge a branch into the checked out branch.

        Args:
            branch_name: Branch to merge.
            author_name: Author and committer of the merge commit (default: author of HEAD).
            author_email: Author and committer email (default: author of HEAD).
        """
        author = self._author(author_name, author_email)
        logger.info("Merging %s as %s", branch_name, author)
        with self.with_author_and_email(author.name, author.email):
            self._run_git("merge", branch_name)

    def merge_fast_forward_only(self, branch_name: str) -> None:
        """Merge a branch only if it fast-forwards.

        Raises:
            GitCommandError: If the merge is not a fast-forward.
        """
        self._run_git("merge", "--ff-only", branch_name)

    def push(self, refspec: str = "") -> None:
        """Push to the remote.

        Args:
            refspec: Branch or tag name, optionally preceded by a remote.
        """
        refspec = add_origin_when_missing(refspec, self.settings.remote)
        logger.info("Pushing %s", refspec or "current branch")
        self.execute_git_with_credentials(["push", *refspec.split()])

    def pull(
        self,
        refspec: str = "",
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> None:
        """Pull from the remote.

        Args:
            refspec: Branch or tag name, optionally preceded by a remote.
            author_name: Author and committer of a merge commit (default: author of HEAD).
            author_email: Author and committer email (default: author of HEAD).
        """
        refspec = add_origin_when_missing(refspec, self.settings.remote)
        author = self._author(author_name, author_email)
        logger.info("Pulling %s", refspec or "current branch")
        with self.with_author_and_email(author.name, author.email):
            self.execute_git_with_credentials(["pull", *refspec.split()])

    def push_and_pull_on_failure(
        self,
        refspec: str = "",
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> None:
        """Push to the remote, pulling before each retry of a failed push.

        Args:
            refspec: Branch or tag name, optionally preceded by a remote.
            author_name: Author and committer of merge commits (default: author of HEAD).
            author_email: Author and committer email (default: author of HEAD).
        """
        refspec = add_origin_when_missing(refspec, self.settings.remote)
        author = self._author(author_name, author_email)

        def pull_first() -> None:
            self.sh.echo("Got error, trying to pull first")
            self.pull(refspec, author.name, author.email)

        logger.info("Pushing %s", refspec or "current branch")
        self.execute_git_with_credentials(["push", *refspec.split()], pull_first)

    def push_github_pages_branch(
        self,
        workspace_folder: str,
        commit_message: str,
        sub_folder: str = ".",
    ) -> None:
        """Commit and push a folder to the `gh-pages` branch of this repository.

        The branch is checked out into a temporary `.gh-pages` folder, which
        is removed afterwards. The author of HEAD of this repository is used
        as author and committer, not the last author of the `gh-pages` branch.

        Args:
            workspace_folder: Folder (relative to the repository) to publish.
            commit_message: Message of the commit on `gh-pages`.
            sub_folder: Folder inside the branch to copy the files into.

        Raises:
            PagesSourceNotFoundError: If `workspace_folder` is not a directory.
        """
        pages_branch = self.settings.github_pages_branch
        pages_dir = self.sh.cwd / self.settings.github_pages_dir
        source = self.sh.cwd / workspace_folder
        if not source.is_dir():
            raise PagesSourceNotFoundError(workspace_folder)
        repository_url = self.get_repository_url()
        author = self._author(None, None)

        if pages_dir.exists():
            shutil.rmtree(pages_dir)

        logger.info("Publishing %s to %s of %s", workspace_folder, pages_branch, repository_url)
        try:
            with self.sh.with_dir(self.settings.github_pages_dir) as checkout_dir:
                self.clone(repository_url, branch=pages_branch)
                target = checkout_dir / sub_folder
                target.mkdir(parents=True, exist_ok=True)
                _copy_contents(source, target)
                self.add(".")
                self.commit(commit_message, author.name, author.email)
                self.push(pages_branch)
        finally:
            if pages_dir.exists():
                shutil.rmtree(pages_dir)

    def execute_git_with_credentials(
        self,
        args: str | Sequence[str],
        execute_before_retry: Callable[[], None] | None = None,
    ) -> None:
        """Run git with the configured credentials, retrying on failure.

        The credentials are handed to git through a credential helper that
        reads them from the environment. A failing call is retried up to
        `max_retries` attempts in total, `retry_timeout` ms apart. Without
        credentials the call is run once.

        Args:
            args: Git arguments.
            execute_before_retry: Called before every retry.

        Raises:
            RetriesExhaustedError: If the call still fails after all retries.
            GitCommandError: If a call without credentials fails.
        """
        self._execute_with_credentials(args, self.credentials, execute_before_retry)

    def _execute_with_credentials(
        self,
        args: str | Sequence[str],
        credentials_id: str | None,
        execute_before_retry: Callable[[], None] | None = None,
    ) -> None:
        args = shlex.split(args) if isinstance(args, str) else list(args)
        if not credentials_id:
            self._run_git(*args)
            return

        with self.credential_store.bind(self.sh, credentials_id):
            returncode = 1
            stderr = ""
            retry_count = 0
            while returncode != 0 and retry_count < self.max_retries:
                if retry_count > 0:
                    logger.warning(
                        "Got error code %d - retrying in %d ms ...", returncode, self.retry_timeout
                    )
                    time.sleep(self.retry_timeout / 1000)
                    if execute_before_retry is not None:
                        execute_before_retry()
                retry_count += 1
                result = self.sh.execute(
                    ["git", "-c", f"credential.helper={CREDENTIAL_HELPER}", *args]
                )
                returncode, stderr = result.returncode, result.stderr

            if returncode != 0:
                logger.error(
                    "git %s failed after %d attempts: %s", args[0], retry_count, stderr.strip()
                )
                raise RetriesExhaustedError(retry_count, returncode, stderr)


def _copy_contents(source: Path, target: Path) -> None:
    """Copy the non-hidden entries of `source` into `target`, overwriting."""
    for entry in sorted(source.iterdir()):
        if entry.name.startswith("."):
            continue
        destination = target / entry.name
        if entry.is_dir():
            shutil.copytree(entry, destination, dirs_exist_ok=True)
        else:
            shutil.copy2(entry, destination)
