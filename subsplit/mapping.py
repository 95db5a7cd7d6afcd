# subsplit/mapping.py
"""
Original → split commit id table.

Responsibilities:
- Hold the append-only mapping for one run
- Rebuild entries from provenance markers in an existing split history
- Export the table as JSON

Provenance marker format, one line anywhere in a commit message:
    original-commit: <original id>
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple
import json
import re

from subsplit.ids import OriginalId, SplitId, is_object_id
from subsplit.repo import GitStore


PROVENANCE_KEY = "original-commit"

_PROVENANCE_RE = re.compile(r"^original-commit: (\S+)[ \t\r]*$")


class MappingError(RuntimeError):
    pass


def provenance_line(original: OriginalId) -> str:
    return f"{PROVENANCE_KEY}: {original}"


def parse_provenance(message: str) -> Optional[OriginalId]:
    """
    Return the original id recorded in message, or None.

    When a message carries several markers the last one wins, since the
    marker is always appended.
    """
    found: Optional[OriginalId] = None

    for line in message.splitlines():
        m = _PROVENANCE_RE.match(line)
        if not m:
            continue

        candidate = m.group(1).lower()
        if is_object_id(candidate):
            found = OriginalId(candidate)

    return found


class MappingTable:
    def __init__(self) -> None:
        self._entries: Dict[OriginalId, SplitId] = {}

    def __contains__(self, original: object) -> bool:
        return original in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, original: OriginalId) -> Optional[SplitId]:
        return self._entries.get(original)

    def insert(self, original: OriginalId, split: SplitId) -> None:
        """
        Record a new entry. Entries are never overwritten.
        """
        existing = self._entries.get(original)
        if existing is not None:
            raise MappingError(
                f"Commit {original} is already mapped to {existing}, refusing to remap to {split}"
            )

        self._entries[original] = split

    def items(self) -> Iterator[Tuple[OriginalId, SplitId]]:
        return iter(self._entries.items())

    def preload(self, store: GitStore, root: str) -> int:
        """
        Insert one entry per commit reachable from root that carries a marker.

        Commits without a valid marker are ignored. When two split commits claim
        the same original, the newest one (first in log order) is kept.

        Returns:
            number of entries added
        """
        added = 0

        for split_id, message in store.iter_messages(root):
            original = parse_provenance(message)
            if original is None or original in self._entries:
                continue

            self._entries[original] = SplitId(split_id)
            added += 1

        return added

    def write_json(self, path: Path) -> None:
        text = json.dumps(dict(self._entries), indent=2, sort_keys=True) + "\n"

        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise MappingError(f"Failed to write commit map: {path}") from e
