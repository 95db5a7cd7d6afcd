# subsplit/synthesize.py
"""
Commit synthesis.

Responsibilities:
- Read one original commit and the prefix tree it holds
- Repair identity fields git commit-tree would reject
- Append the provenance marker to the message
- Create the split commit on top of already translated parents

This module does NOT:
- look up parents in the mapping table
- record the new id anywhere
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Sequence, Tuple

from subsplit.ids import OriginalId, SplitId
from subsplit.mapping import provenance_line
from subsplit.repo import GitRepositoryError, GitStore, Identity, ObjectLookupError


UNKNOWN_NAME = "unknown"


WarnFn = Callable[[str], None]


class EngineError(RuntimeError):
    pass


class SynthesisError(EngineError):
    """
    Raised when an original commit cannot be read or recreated.

    Attributes:
        commit: original id of the failing commit
    """

    def __init__(self, commit: OriginalId, message: str) -> None:
        self.commit = commit
        super().__init__(f"{commit}: {message}")


class IntegrityError(SynthesisError):
    pass


def repair_identities(
    author: Identity,
    committer: Identity,
) -> Tuple[Identity, Identity, List[str]]:
    """
    Fill in empty author or committer names.

    Rules:
    1) both names empty: both become "unknown"
    2) author name empty: copy the committer name
    3) committer name empty: copy the author name

    Email and date are never touched.

    Returns:
        (author, committer, warnings)
    """
    warnings: List[str] = []

    if not author.name and not committer.name:
        warnings.append(f"author and committer names are empty, using '{UNKNOWN_NAME}'")
        return (
            replace(author, name=UNKNOWN_NAME),
            replace(committer, name=UNKNOWN_NAME),
            warnings,
        )

    if not author.name:
        warnings.append(f"author name is empty, using committer name '{committer.name}'")
        return replace(author, name=committer.name), committer, warnings

    if not committer.name:
        warnings.append(f"committer name is empty, using author name '{author.name}'")
        return author, replace(committer, name=author.name), warnings

    return author, committer, warnings


def build_message(body: str, original: OriginalId) -> str:
    """
    Append the provenance marker to a commit message.

    Trailing newlines of body are dropped so exactly one newline separates it
    from the marker. The result always ends with a newline.
    """
    body = body.rstrip("\n")
    marker = provenance_line(original)

    if not body:
        return marker + "\n"

    return f"{body}\n{marker}\n"


def _silent(_message: str) -> None:
    return None


def synthesize(
    store: GitStore,
    original: OriginalId,
    parents: Sequence[SplitId],
    prefix: str,
    *,
    warn: WarnFn = _silent,
) -> SplitId:
    """
    Create the split commit for one original commit.

    Args:
        store: git store
        original: original commit to translate
        parents: split ids of its parents, in original order
        prefix: normalised subdirectory path
        warn: receives identity repair warnings

    Returns:
        the new split id. The caller records it.
    """
    try:
        node = store.get_commit_metadata(original)
        tree = store.get_subtree(original, prefix)
    except ObjectLookupError as e:
        raise SynthesisError(original, str(e)) from e

    if not tree:
        raise IntegrityError(original, f"no tree at '{prefix}' in a commit listed as touching it")

    author, committer, warnings = repair_identities(node.author, node.committer)
    for w in warnings:
        warn(f"{original}: {w}")

    message = build_message(node.message, original)

    try:
        return store.create_commit(
            tree, list(parents), author, committer, message, encoding=node.encoding
        )
    except GitRepositoryError as e:
        raise SynthesisError(original, str(e)) from e
