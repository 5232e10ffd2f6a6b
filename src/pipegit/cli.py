"""Command line entry point for running pipegit steps from shell pipelines."""

from __future__ import annotations

import argparse
import os
import sys
from typing import TYPE_CHECKING

from pydantic import ValidationError

from pipegit import __version__
from pipegit.config import GitSettings
from pipegit.credentials import CredentialsError
from pipegit.git import Git, GitError
from pipegit.logging import get_logger, setup_logging
from pipegit.shell import ShellError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = get_logger("cli")


def cmd_push(git: Git, args: argparse.Namespace) -> None:
    if args.pull_on_failure:
        git.push_and_pull_on_failure(args.refspec, args.author_name, args.author_email)
    else:
        git.push(args.refspec)


def cmd_push_pull(git: Git, args: argparse.Namespace) -> None:
    git.push_and_pull_on_failure(args.refspec, args.author_name, args.author_email)


def cmd_pull(git: Git, args: argparse.Namespace) -> None:
    git.pull(args.refspec, args.author_name, args.author_email)


def cmd_fetch(git: Git, args: argparse.Namespace) -> None:
    git.fetch()


def cmd_commit(git: Git, args: argparse.Namespace) -> None:
    if args.all:
        git.add(".")
    git.commit(args.message, args.author_name, args.author_email)


def cmd_tag(git: Git, args: argparse.Namespace) -> None:
    git.set_tag(args.tag, args.message, args.author_name, args.author_email)


def cmd_pages(git: Git, args: argparse.Namespace) -> None:
    git.push_github_pages_branch(args.folder, args.message, args.sub_folder)


def cmd_info(git: Git, args: argparse.Namespace) -> None:
    """Print facts about HEAD, one `key=value` per line."""
    info = {
        "branch": git.branch_name,
        "commit": git.get_commit_hash(),
        "commit_short": git.get_commit_hash_short(),
        "author": git.get_commit_author_complete(),
        "repository_url": git.get_repository_url(),
        "repository_name": git.get_repository_name(),
        "tag": git.get_tag(),
    }
    for key, value in info.items():
        print(f"{key}={value}")


def _add_author_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--author-name", default=None, help="Author and committer name (default: author of HEAD)."
    )
    parser.add_argument(
        "--author-email", default=None, help="Author and committer email (default: author of HEAD)."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipegit", description="Credential-aware git steps for CI pipelines."
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s version {__version__}"
    )
    parser.add_argument(
        "-C", "--repo", default=".", help="Path to the repository (default: current directory)."
    )
    parser.add_argument(
        "--credentials",
        default=None,
        help="Credentials id; the pair is read from <ID>_USR and <ID>_PSW. "
        "Defaults to PIPEGIT_CREDENTIALS_ID.",
    )
    parser.add_argument(
        "--max-retries", type=int, default=None, help="Attempts per remote call (default: 5)."
    )
    parser.add_argument(
        "--retry-timeout",
        type=int,
        default=None,
        help="Milliseconds between attempts (default: 500).",
    )
    parser.add_argument("--log-dir", default=None, help="Also write a rotating log file here.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug output.")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    refspec_help = "Branch or tag, optionally preceded by a remote."

    push = subparsers.add_parser("push", help="Push to the remote.")
    push.add_argument("refspec", nargs="?", default="", help=refspec_help)
    push.add_argument(
        "--pull-on-failure", action="store_true", help="Pull before retrying a failed push."
    )
    _add_author_arguments(push)
    push.set_defaults(func=cmd_push)

    push_pull = subparsers.add_parser(
        "push-pull", help="Push to the remote, pulling before each retry of a failed push."
    )
    push_pull.add_argument("refspec", nargs="?", default="", help=refspec_help)
    _add_author_arguments(push_pull)
    push_pull.set_defaults(func=cmd_push_pull)

    pull = subparsers.add_parser("pull", help="Pull from the remote.")
    pull.add_argument("refspec", nargs="?", default="", help=refspec_help)
    _add_author_arguments(pull)
    pull.set_defaults(func=cmd_pull)

    fetch = subparsers.add_parser("fetch", help="Fetch all remote branches.")
    fetch.set_defaults(func=cmd_fetch)

    commit = subparsers.add_parser("commit", help="Commit staged changes.")
    commit.add_argument("-m", "--message", required=True)
    commit.add_argument("-a", "--all", action="store_true", help="Stage all changes first.")
    _add_author_arguments(commit)
    commit.set_defaults(func=cmd_commit)

    tag = subparsers.add_parser("tag", help="Create an annotated tag on HEAD.")
    tag.add_argument("tag")
    tag.add_argument("-m", "--message", required=True)
    _add_author_arguments(tag)
    tag.set_defaults(func=cmd_tag)

    pages = subparsers.add_parser("pages", help="Publish a folder to the gh-pages branch.")
    pages.add_argument("folder", help="Folder to publish, relative to the repository.")
    pages.add_argument("-m", "--message", required=True)
    pages.add_argument("--sub-folder", default=".", help="Target folder inside the branch.")
    pages.set_defaults(func=cmd_pages)

    info = subparsers.add_parser("info", help="Print branch, commit, author, remote and tag.")
    info.set_defaults(func=cmd_info)

    return parser


def _configure_logging(log_dir: str | None, verbose: bool) -> None:
    # Without a log directory only the console is used, so the log never
    # lands in the workspace being committed
    setup_logging(
        log_dir=log_dir,
        level="DEBUG" if verbose else None,
        log_file_enabled=log_dir is not None or bool(os.environ.get("PIPEGIT_LOG_DIR")),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if "func" not in args:
        parser.print_help()
        return 2

    _configure_logging(args.log_dir, args.verbose)

    try:
        settings = GitSettings.from_env(
            credentials_id=args.credentials,
            max_retries=args.max_retries,
            retry_timeout=args.retry_timeout,
        )
    except ValidationError as e:
        parser.error(str(e))

    git = Git(args.repo, settings=settings)
    try:
        args.func(git, args)
    except (GitError, CredentialsError, ShellError) as e:
        logger.error("pipegit: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
