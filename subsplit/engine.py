# subsplit/engine.py
"""
Split engine.

Responsibilities:
- Enumerate the revisions that touched a prefix
- Optionally preload the mapping table from an earlier split
- Translate every revision, ancestors first, into a split commit
- Report progress and warnings to an observer

This module does NOT:
- parse arguments or config files
- print anything
- move branches
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from subsplit.revlist import list_revisions
from subsplit.ids import OriginalId, SplitId
from subsplit.mapping import MappingTable
from subsplit.repo import GitStore, Revision
from subsplit.synthesize import EngineError, synthesize


class MissingParentError(EngineError):
    def __init__(self, commit: OriginalId, parent: OriginalId) -> None:
        self.commit = commit
        self.parent = parent
        super().__init__(
            f"Parent {parent} of {commit} has no split counterpart; "
            "revision order is broken or the preload history is corrupt"
        )


class CommitState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RESOLVING_PARENTS = "resolving_parents"
    SYNTHESIZING = "synthesizing"
    MAPPED = "mapped"


@dataclass(frozen=True)
class ProgressEvent:
    index: int  # 0 based position in the revision list
    total: int
    commit: OriginalId
    state: CommitState
    split: Optional[SplitId] = None


class SplitObserver:
    """
    Receives engine notifications. The base class ignores everything.
    """

    def on_state(self, event: ProgressEvent) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass


@dataclass
class SplitResult:
    head: Optional[SplitId]
    revisions: List[Revision]
    synthesized: List[Tuple[OriginalId, SplitId]] = field(default_factory=list)
    skipped: int = 0
    preloaded: int = 0
    table: MappingTable = field(default_factory=MappingTable)


@dataclass(frozen=True)
class PlanEntry:
    index: int
    commit: OriginalId
    parents: Tuple[OriginalId, ...]
    state: CommitState  # SKIPPED when already mapped, PENDING otherwise
    split: Optional[SplitId]


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def split_history(
    store: GitStore,
    prefix: str,
    start: str = "HEAD",
    *,
    onto: Optional[str] = None,
    observer: Optional[SplitObserver] = None,
    table: Optional[MappingTable] = None,
) -> SplitResult:
    """
    Build the split history of prefix up to start.

    Args:
        store: git store
        prefix: normalised subdirectory path
        start: revision to split from
        onto: root of an earlier split history to preload from
        observer: progress and warning sink
        table: mapping table to extend, a fresh one by default

    Returns:
        SplitResult whose head is the split id of the last revision, or None
        when no revision touched prefix.
    """
    observer = observer or SplitObserver()
    table = table if table is not None else MappingTable()

    revisions, preloaded = _prepare(store, prefix, start, onto, table)

    result = SplitResult(head=None, revisions=revisions, preloaded=preloaded, table=table)
    total = len(revisions)

    for index, rev in enumerate(revisions):
        observer.on_state(ProgressEvent(index, total, rev.commit, CommitState.PENDING))

        existing = table.lookup(rev.commit)
        if existing is not None:
            result.skipped += 1
            observer.on_state(
                ProgressEvent(index, total, rev.commit, CommitState.SKIPPED, existing)
            )
            continue

        observer.on_state(ProgressEvent(index, total, rev.commit, CommitState.RESOLVING_PARENTS))
        parents = resolve_parents(table, rev)

        observer.on_state(ProgressEvent(index, total, rev.commit, CommitState.SYNTHESIZING))
        split = synthesize(store, rev.commit, parents, prefix, warn=observer.on_warning)

        table.insert(rev.commit, split)
        result.synthesized.append((rev.commit, split))
        observer.on_state(ProgressEvent(index, total, rev.commit, CommitState.MAPPED, split))

    if revisions:
        result.head = table.lookup(revisions[-1].commit)

    return result


def plan_split(
    store: GitStore,
    prefix: str,
    start: str = "HEAD",
    *,
    onto: Optional[str] = None,
) -> List[PlanEntry]:
    """
    Enumerate and preload exactly like split_history, without creating commits.
    """
    table = MappingTable()
    revisions, _preloaded = _prepare(store, prefix, start, onto, table)

    entries: List[PlanEntry] = []
    for index, rev in enumerate(revisions):
        split = table.lookup(rev.commit)
        entries.append(
            PlanEntry(
                index=index,
                commit=rev.commit,
                parents=rev.parents,
                state=CommitState.SKIPPED if split is not None else CommitState.PENDING,
                split=split,
            )
        )

    return entries


def resolve_parents(table: MappingTable, rev: Revision) -> List[SplitId]:
    """
    Translate the parents of rev into split ids, keeping their order.
    """
    resolved: List[SplitId] = []

    for parent in rev.parents:
        split = table.lookup(parent)
        if split is None:
            raise MissingParentError(rev.commit, parent)
        resolved.append(split)

    return resolved


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _prepare(
    store: GitStore,
    prefix: str,
    start: str,
    onto: Optional[str],
    table: MappingTable,
) -> Tuple[List[Revision], int]:
    start_id = store.resolve_commit(start)
    revisions = list_revisions(store, start_id, prefix)

    preloaded = 0
    if onto is not None:
        preloaded = table.preload(store, store.resolve_commit(onto))

    return revisions, preloaded

