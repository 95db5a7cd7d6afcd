# subsplit/ids.py
"""
Commit identifier spaces.

Original-space ids name commits of the source graph.
Split-space ids name commits synthesized by this tool.

Both are plain strings at runtime. The NewType wrappers keep them apart for
readers and type checkers.
"""

from typing import NewType
import re


OriginalId = NewType("OriginalId", str)
SplitId = NewType("SplitId", str)


# SHA-1 or SHA-256 object names
_OBJECT_ID_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")


def is_object_id(value: str) -> bool:
    return bool(_OBJECT_ID_RE.match(value))
