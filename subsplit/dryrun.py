# subsplit/dryrun.py
"""
Dry run reporting.

Responsibilities:
- Build a report for a planned split
- Render a deterministic, human readable output

This module does NOT:
- call git
- create commits
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from subsplit.engine import CommitState, PlanEntry


@dataclass(frozen=True)
class DryRunEntry:
    index: int
    hash_prefix: str
    parent_prefixes: List[str]
    state: CommitState
    split_prefix: str


def build_entries(
    plan: Sequence[PlanEntry],
    *,
    hash_len: int = 12,
) -> List[DryRunEntry]:
    """
    Build per commit dry run entries.

    Raises:
        ValueError: if hash_len is invalid.
    """
    if hash_len <= 0:
        raise ValueError("hash_len must be a positive integer")

    entries: List[DryRunEntry] = []

    for p in plan:
        entries.append(
            DryRunEntry(
                index=p.index,
                hash_prefix=p.commit[:hash_len],
                parent_prefixes=[parent[:hash_len] for parent in p.parents],
                state=p.state,
                split_prefix=p.split[:hash_len] if p.split else "",
            )
        )

    entries.sort(key=lambda e: e.index)
    return entries


def render_dryrun_report(
    *,
    prefix: str,
    start: str,
    onto: str | None,
    entries: Sequence[DryRunEntry],
    hash_len: int,
) -> str:
    """
    Render a dry run report as plain text.
    """
    skipped = sum(1 for e in entries if e.state == CommitState.SKIPPED)

    lines: List[str] = []

    lines.append(f"Prefix: {prefix}")
    lines.append(f"Start: {start}")
    lines.append(f"Preload from: {onto if onto else '<none>'}")
    lines.append(f"Revisions touching prefix: {len(entries)}")
    lines.append(f"Already split: {skipped}")
    lines.append(f"To synthesize: {len(entries) - skipped}")

    if not entries:
        return "\n".join(lines)

    lines.append("")
    lines.append(f"Hash shown as {hash_len} character prefix")
    lines.append("")

    headers = [
        "idx",
        "commit",
        "parents",
        "state",
        "split",
    ]

    rows: List[List[str]] = []
    for e in sorted(entries, key=lambda x: x.index):
        rows.append(
            [
                str(e.index),
                e.hash_prefix,
                ",".join(e.parent_prefixes) if e.parent_prefixes else "-",
                e.state.value,
                e.split_prefix or "-",
            ]
        )

    lines.extend(_format_table(headers, rows))
    return "\n".join(lines)


def _format_table(headers: List[str], rows: List[List[str]]) -> List[str]:
    widths = [len(h) for h in headers]

    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def fmt_row(items: List[str]) -> str:
        return "  ".join(items[i].ljust(widths[i]) for i in range(len(items))).rstrip()

    lines: List[str] = []
    lines.append(fmt_row(headers))
    lines.append(fmt_row(["-" * w for w in widths]))

    for row in rows:
        lines.append(fmt_row(row))

    return lines
