# subsplit/repo.py
"""
Git store adapter.

Every read and write against the object database goes through this module.
Handles Git Bash ↔ Windows path normalisation.

Store operations used by the split engine:
- list_commits_touching: path limited, ancestors first, simplified parents
- get_commit_metadata: tree, parents, identities and raw message of one commit
- get_subtree: tree id of the prefix at one commit
- create_commit: git commit-tree with identity passed per call

This module does NOT:
- decide which commits to synthesize
- translate parents between id spaces
- repair identity fields
"""

from __future__ import annotations

from dataclasses import dataclass
from subprocess import run, PIPE, CalledProcessError, CompletedProcess
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
from pathlib import Path
import os

from subsplit.ids import OriginalId, SplitId


# Single source of truth for git field separation
_FIELD_SEP = "\x00"


@dataclass(frozen=True)
class Identity:
    name: str
    email: str
    date: str  # raw git date: "<unix seconds> <+HHMM or -HHMM>"


@dataclass(frozen=True)
class CommitNode:
    commit: OriginalId
    tree: str
    parents: Tuple[OriginalId, ...]
    author: Identity
    committer: Identity
    message: str
    encoding: Optional[str] = None  # encoding header, None for the UTF-8 default


@dataclass(frozen=True)
class Revision:
    commit: OriginalId
    parents: Tuple[OriginalId, ...]


class GitRepositoryError(RuntimeError):
    pass


class ObjectLookupError(GitRepositoryError):
    """
    Raised when git cannot resolve a revision, commit, or tree.

    Attributes:
        name: the revision or object name that failed to resolve
    """

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(f"{name}: {message}")


class CommitCreationError(GitRepositoryError):
    pass


def _normalise_repo_path(repo_path: Path) -> Path:
    """
    Convert Git Bash paths (/c/Users/...) to native Windows paths (C:\\Users\\...).
    No-op on non-Windows systems.
    """
    if os.name != "nt":
        return repo_path

    p = str(repo_path)

    if p.startswith("/") and len(p) >= 3 and p[2] == "/":
        drive = p[1]
        if drive.isalpha():
            return Path(f"{drive.upper()}:/{p[3:]}")

    return Path(p)


def _decode(data: bytes) -> str:
    """
    Bytes from git → str without losing anything.

    Invalid UTF-8 survives as surrogates and _encode restores it exactly.
    """
    return data.decode("utf-8", "surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _run_git(
    repo_path: Path,
    args: Sequence[str],
    *,
    input: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CompletedProcess:
    """
    Run git without raising on a non-zero exit code.

    Pipes are binary so no newline translation or re-encoding happens.
    """
    result = run(
        ["git", "-C", str(_normalise_repo_path(repo_path))] + list(args),
        input=_encode(input) if input is not None else None,
        stdout=PIPE,
        stderr=PIPE,
        env=dict(env) if env is not None else None,
        check=False,
    )

    return CompletedProcess(
        result.args,
        result.returncode,
        _decode(result.stdout),
        result.stderr.decode("utf-8", "replace"),
    )


def _run_git_command(
    repo_path: Path,
    args: Sequence[str],
    *,
    input: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    keep_trailing_newlines: bool = False,
) -> str:
    try:
        result = _run_git(repo_path, args, input=input, env=env)
        result.check_returncode()
    except CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitRepositoryError(stderr if stderr else "git command failed") from e
    except FileNotFoundError as e:
        raise GitRepositoryError("git executable not found on PATH") from e

    if keep_trailing_newlines:
        return result.stdout

    # Do not strip spaces — only remove trailing newlines
    return result.stdout.rstrip("\n")


def ensure_git_repository(repo_path: Path) -> None:
    try:
        _run_git_command(repo_path, ["rev-parse", "--git-dir"])
    except GitRepositoryError as e:
        raise GitRepositoryError(f"Not a git repository: {repo_path}") from e


def _parse_identity(commit_id: str, value: str) -> Identity:
    """
    Split "Name <email> <unix seconds> <tz>" the way git does.
    """
    lt = value.find("<")
    gt = value.find(">", lt + 1)

    if lt < 0 or gt < 0:
        raise ObjectLookupError(commit_id, f"malformed identity: {value!r}")

    return Identity(
        name=value[:lt].strip(" "),
        email=value[lt + 1 : gt],
        date=value[gt + 1 :].strip(" "),
    )


def identity_env(author: Identity, committer: Identity) -> Dict[str, str]:
    """
    Build the environment entries git commit-tree reads identity from.

    The "@" prefix forces git to read the date as a unix timestamp even for
    very small values.
    """
    return {
        "GIT_AUTHOR_NAME": author.name,
        "GIT_AUTHOR_EMAIL": author.email,
        "GIT_AUTHOR_DATE": f"@{author.date}",
        "GIT_COMMITTER_NAME": committer.name,
        "GIT_COMMITTER_EMAIL": committer.email,
        "GIT_COMMITTER_DATE": f"@{committer.date}",
    }


class GitStore:
    """
    Content addressed store backed by a local git repository.

    All calls block until git exits. Nothing here mutates process wide state.
    """

    def __init__(self, repo_path: Path) -> None:
        self.repo_path = _normalise_repo_path(repo_path)

    def resolve_commit(self, rev: str) -> OriginalId:
        result = _run_git(self.repo_path, ["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"])
        if result.returncode != 0:
            raise ObjectLookupError(rev, "unknown revision or not a commit")
        return OriginalId(result.stdout.strip())

    def list_commits_touching(self, prefix: str, start: str) -> List[Revision]:
        """
        List commits reachable from start that touch prefix, oldest first.

        Parent lists are the ones git reports after history simplification.
        """
        raw = _run_git_command(
            self.repo_path,
            ["rev-list", "--topo-order", "--reverse", "--parents", start, "--", prefix],
        )

        revisions: List[Revision] = []

        if not raw:
            return revisions

        for line in raw.splitlines():
            parts = line.split()
            if not parts:
                continue

            revisions.append(
                Revision(
                    commit=OriginalId(parts[0]),
                    parents=tuple(OriginalId(p) for p in parts[1:]),
                )
            )

        return revisions

    def get_commit_metadata(self, commit_id: str) -> CommitNode:
        """
        Read one commit object verbatim.

        Message and identity fields keep their exact bytes (CR, non-UTF-8 and
        all). A non-default encoding header is reported so it can be carried over.
        """
        try:
            raw = _run_git_command(
                self.repo_path,
                ["cat-file", "commit", commit_id],
                keep_trailing_newlines=True,
            )
        except GitRepositoryError as e:
            raise ObjectLookupError(commit_id, f"cannot read commit metadata ({e})") from e

        header_block, sep, message = raw.partition("\n\n")
        if not sep:
            header_block, message = raw.rstrip("\n"), ""

        tree = ""
        parents: List[OriginalId] = []
        author: Optional[Identity] = None
        committer: Optional[Identity] = None
        encoding: Optional[str] = None

        for line in header_block.split("\n"):
            # Continuation of a multi line header such as gpgsig
            if line.startswith(" "):
                continue

            key, _, value = line.partition(" ")

            if key == "tree":
                tree = value
            elif key == "parent":
                parents.append(OriginalId(value))
            elif key == "author":
                author = _parse_identity(commit_id, value)
            elif key == "committer":
                committer = _parse_identity(commit_id, value)
            elif key == "encoding":
                encoding = value

        if not tree or author is None or committer is None:
            raise ObjectLookupError(commit_id, f"malformed commit object: {header_block!r}")

        return CommitNode(
            commit=OriginalId(commit_id),
            tree=tree,
            parents=tuple(parents),
            author=author,
            committer=committer,
            message=message,
            encoding=encoding,
        )

    def get_subtree(self, commit_id: str, prefix: str) -> Optional[str]:
        """
        Return the tree id stored at prefix in commit_id, or None when absent.
        """
        try:
            raw = _run_git_command(self.repo_path, ["ls-tree", "-z", commit_id, "--", prefix])
        except GitRepositoryError as e:
            raise ObjectLookupError(commit_id, f"cannot list tree ({e})") from e

        for entry in raw.split(_FIELD_SEP):
            if not entry:
                continue

            meta, _, path = entry.partition("\t")
            fields = meta.split()

            if len(fields) == 3 and fields[1] == "tree" and path == prefix:
                return fields[2]

        return None

    def create_commit(
        self,
        tree: str,
        parents: Sequence[SplitId],
        author: Identity,
        committer: Identity,
        message: str,
        encoding: Optional[str] = None,
    ) -> SplitId:
        """
        Write a commit object. The message bytes are passed through unchanged.

        A non-default encoding is recorded through i18n.commitEncoding so the
        header matches the original commit.
        """
        args: List[str] = []
        if encoding:
            args.extend(["-c", f"i18n.commitEncoding={encoding}"])

        args.extend(["commit-tree", "--no-gpg-sign", tree])
        for parent in parents:
            args.extend(["-p", parent])

        env = dict(os.environ)
        env.update(identity_env(author, committer))

        try:
            out = _run_git_command(self.repo_path, args, input=message, env=env)
        except GitRepositoryError as e:
            raise CommitCreationError(f"git commit-tree rejected tree {tree}: {e}") from e

        return SplitId(out.strip())

    def iter_messages(self, root: str) -> Iterator[Tuple[str, str]]:
        """
        Yield (commit id, full message) for every commit reachable from root.
        """
        raw = _run_git_command(
            self.repo_path,
            ["log", "-z", "--no-show-signature", "--format=%H%n%B", root, "--"],
        )

        for record in raw.split(_FIELD_SEP):
            if not record:
                continue

            commit_id, _, message = record.partition("\n")
            yield commit_id.strip(), message

    def read_ref(self, ref: str) -> Optional[str]:
        result = _run_git(self.repo_path, ["rev-parse", "--verify", "--quiet", ref])
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = _run_git(self.repo_path, ["merge-base", "--is-ancestor", ancestor, descendant])

        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False

        stderr = (result.stderr or "").strip()
        raise GitRepositoryError(stderr if stderr else "git merge-base failed")

    def update_branch(self, name: str, commit: SplitId) -> Optional[str]:
        """
        Point refs/heads/<name> at commit.

        An existing branch is only moved forward. Returns the previous tip, if any.
        """
        ref = f"refs/heads/{name}"
        old = self.read_ref(ref)

        if old is not None and old != commit and not self.is_ancestor(old, commit):
            raise GitRepositoryError(
                f"Branch '{name}' is not an ancestor of split result {commit}"
            )

        args = ["update-ref", "-m", "git-history-split", ref, commit]
        if old is not None:
            args.append(old)

        _run_git_command(self.repo_path, args)
        return old
