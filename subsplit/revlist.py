# subsplit/revlist.py
"""
Revision enumeration.

Lists the commits that touched a prefix, each with its simplified parent list,
ancestors first.

This module does NOT:
- create objects
- second-guess the parent lists git reports
"""

from __future__ import annotations

from typing import List

from subsplit.ids import OriginalId
from subsplit.repo import GitStore, Revision


def list_revisions(store: GitStore, start: OriginalId, prefix: str) -> List[Revision]:
    """
    Materialize the revision list for prefix reachable from start.

    Args:
        store: git store to query
        start: resolved starting commit
        prefix: normalised subdirectory path

    Returns:
        revisions in topological order, ancestors first. Empty when no
        ancestor of start touched prefix.
    """
    return list(store.list_commits_touching(prefix, start))
