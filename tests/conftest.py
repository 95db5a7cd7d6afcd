"""
Shared pytest fixtures for git-history-split tests.

Provides an in-memory store for engine level tests and helpers that build
throwaway git repositories for store and CLI tests.
"""

import hashlib
import json
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from subsplit.repo import CommitNode, Identity, ObjectLookupError, Revision


def oid(label: str) -> str:
    """Deterministic 40 character hex id for a readable label."""
    return hashlib.sha1(label.encode("utf-8")).hexdigest()


DEFAULT_AUTHOR = Identity("Ada", "ada@example.com", "1500000000 +0000")
DEFAULT_COMMITTER = Identity("Grace", "grace@example.com", "1500000100 +0100")


class FakeStore:
    """
    In-memory stand-in for GitStore.

    Original commits are registered with add(). Split commits get ids derived
    from every input of create_commit, so identical inputs give identical ids.
    """

    def __init__(self) -> None:
        self.nodes: Dict[str, CommitNode] = {}
        self.order: List[str] = []
        self.touching: Dict[str, tuple] = {}
        self.subtrees: Dict[str, Optional[str]] = {}
        self.created: Dict[str, dict] = {}
        self.refs: Dict[str, str] = {}
        self.create_calls: List[dict] = []

    def add(
        self,
        label: str,
        parents: Sequence[str] = (),
        *,
        author: Identity = DEFAULT_AUTHOR,
        committer: Identity = DEFAULT_COMMITTER,
        message: str = "",
        touches: bool = True,
        tree: Optional[str] = "default",
    ) -> str:
        commit = oid(label)
        parent_ids = tuple(oid(p) for p in parents)

        self.nodes[commit] = CommitNode(
            commit=commit,
            tree=oid("root-tree-" + label),
            parents=parent_ids,
            author=author,
            committer=committer,
            message=message or f"{label}\n",
        )
        self.order.append(commit)
        self.subtrees[commit] = oid("sub-tree-" + label) if tree == "default" else tree
        if touches:
            self.touching[commit] = parent_ids
        self.refs[label] = commit
        return commit

    # --- store interface -------------------------------------------------

    def resolve_commit(self, rev: str) -> str:
        if rev in self.refs:
            return self.refs[rev]
        if rev in self.nodes or rev in self.created:
            return rev
        raise ObjectLookupError(rev, "unknown revision or not a commit")

    def list_commits_touching(self, prefix: str, start: str) -> List[Revision]:
        reachable = self._ancestors(start)
        return [
            Revision(commit=c, parents=self.touching[c])
            for c in self.order
            if c in reachable and c in self.touching
        ]

    def get_commit_metadata(self, commit_id: str) -> CommitNode:
        try:
            return self.nodes[commit_id]
        except KeyError as e:
            raise ObjectLookupError(commit_id, "cannot read commit metadata") from e

    def get_subtree(self, commit_id: str, prefix: str) -> Optional[str]:
        if commit_id not in self.nodes:
            raise ObjectLookupError(commit_id, "cannot list tree")
        return self.subtrees.get(commit_id)

    def create_commit(self, tree, parents, author, committer, message, encoding=None) -> str:
        record = {
            "encoding": encoding,
            "tree": tree,
            "parents": list(parents),
            "author": [author.name, author.email, author.date],
            "committer": [committer.name, committer.email, committer.date],
            "message": message,
        }
        split = hashlib.sha1(json.dumps(record, sort_keys=True).encode("utf-8")).hexdigest()
        self.create_calls.append(record)
        self.created.setdefault(split, record)
        return split

    def iter_messages(self, root: str):
        seen = set()
        stack = [root]
        while stack:
            current = stack.pop(0)
            if current in seen:
                continue
            seen.add(current)
            record = self.created[current]
            yield current, record["message"]
            stack.extend(record["parents"])

    # --- helpers ---------------------------------------------------------

    def _ancestors(self, start: str) -> set:
        seen = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.nodes[current].parents)
        return seen


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


# ---------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


class GitRepo:
    """Small driver for a scratch repository."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._tick = 0

    def git(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        full_env = dict(os.environ)
        full_env.update(
            {
                "GIT_CONFIG_NOSYSTEM": "1",
                "HOME": str(self.path),
            }
        )
        if env:
            full_env.update(env)

        result = subprocess.run(
            ["git", "-C", str(self.path)] + list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=full_env,
            check=True,
        )
        return result.stdout.strip()

    def write(self, relpath: str, content: str) -> None:
        target = self.path / relpath
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def commit(
        self,
        message: str,
        files: Optional[Dict[str, str]] = None,
        *,
        author_name: str = "Ada",
        committer_name: str = "Grace",
    ) -> str:
        for relpath, content in (files or {}).items():
            self.write(relpath, content)

        self._tick += 1
        date = f"{1600000000 + self._tick * 60} +0000"

        self.git("add", "-A")
        self.git(
            "commit",
            "--allow-empty",
            "-q",
            "-m",
            message,
            env={
                "GIT_AUTHOR_NAME": author_name,
                "GIT_AUTHOR_EMAIL": "ada@example.com",
                "GIT_AUTHOR_DATE": f"@{date}",
                "GIT_COMMITTER_NAME": committer_name,
                "GIT_COMMITTER_EMAIL": "grace@example.com",
                "GIT_COMMITTER_DATE": f"@{date}",
            },
        )
        return self.git("rev-parse", "HEAD")

    def merge(self, branch: str, message: str) -> str:
        self._tick += 1
        date = f"{1600000000 + self._tick * 60} +0000"
        self.git(
            "merge",
            "--no-ff",
            "--no-edit",
            "-q",
            "-m",
            message,
            branch,
            env={
                "GIT_AUTHOR_NAME": "Ada",
                "GIT_AUTHOR_EMAIL": "ada@example.com",
                "GIT_AUTHOR_DATE": f"@{date}",
                "GIT_COMMITTER_NAME": "Grace",
                "GIT_COMMITTER_EMAIL": "grace@example.com",
                "GIT_COMMITTER_DATE": f"@{date}",
            },
        )
        return self.git("rev-parse", "HEAD")

    def cat_commit(self, commit: str) -> bytes:
        """Raw bytes of a commit object."""
        return subprocess.run(
            ["git", "-C", str(self.path), "cat-file", "commit", commit],
            stdout=subprocess.PIPE,
            check=True,
        ).stdout

    def write_commit(self, raw: bytes) -> str:
        """
        Store a hand written commit object and point the current branch at it.

        Lets tests build commits git commit would refuse or normalise.
        """
        result = subprocess.run(
            ["git", "-C", str(self.path), "hash-object", "-t", "commit", "-w", "--literally", "--stdin"],
            input=raw,
            stdout=subprocess.PIPE,
            check=True,
        )
        commit = result.stdout.decode("ascii").strip()
        self.git("update-ref", "HEAD", commit)
        return commit


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    path = tmp_path / "repo"
    path.mkdir()
    repo = GitRepo(path)
    repo.git("init", "-q")
    repo.git("config", "user.name", "Test")
    repo.git("config", "user.email", "test@example.com")
    repo.git("config", "commit.gpgsign", "false")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    return repo
