# subsplit/validation.py
"""
Semantic validation and normalisation for configuration.

Responsibilities:
- Normalise the prefix into the form git pathspecs and ls-tree expect
- Check branch names for characters git refuses in refs
- Produce actionable errors with field path context

This module does NOT:
- load YAML files
- load JSON Schema files
- interact with git
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import re

from subsplit.config import Config


class ValidationError(RuntimeError):
    """
    Raised when configuration is structurally valid but semantically invalid.

    Attributes:
        path: dotted path of the failing field, for example split.prefix
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True)
class ValidatedConfig:
    prefix: str
    rev: str
    onto: Optional[str]
    branch: Optional[str]
    progress: bool
    map_file: Optional[Path]


_BAD_REF_CHARS_RE = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def validate_config(cfg: Config) -> ValidatedConfig:
    """
    Validate and normalise configuration into a form the engine can trust.
    """
    prefix = normalise_prefix(cfg.split.prefix)

    branch = cfg.split.branch
    if branch is not None:
        _check_branch_name(branch)

    map_file = None
    if cfg.output.map_file is not None:
        map_file = Path(cfg.output.map_file).expanduser()

    return ValidatedConfig(
        prefix=prefix,
        rev=cfg.split.rev,
        onto=cfg.split.onto,
        branch=branch,
        progress=cfg.output.progress,
        map_file=map_file,
    )


def normalise_prefix(raw: str) -> str:
    """
    Turn a user supplied prefix into a clean relative path.

    Examples:
      ./lib/widgets/ -> lib/widgets
      lib//widgets   -> lib/widgets
    """
    value = raw.replace("\\", "/")

    if value.startswith("/"):
        raise ValidationError("split.prefix", f"must be relative to the repository root: {raw!r}")

    parts = [p for p in value.split("/") if p]

    while parts and parts[0] == ".":
        parts.pop(0)

    if not parts:
        raise ValidationError("split.prefix", "must name a subdirectory")

    for part in parts:
        if part in (".", ".."):
            raise ValidationError("split.prefix", f"must not contain '.' or '..' components: {raw!r}")

    return "/".join(parts)


def _check_branch_name(name: str) -> None:
    """
    Reject branch names git check-ref-format would refuse.
    """
    if name.startswith("-"):
        raise ValidationError("split.branch", f"must not start with '-': {name!r}")

    if ".." in name or "@{" in name or name == "@":
        raise ValidationError("split.branch", f"contains a forbidden sequence: {name!r}")

    if _BAD_REF_CHARS_RE.search(name):
        raise ValidationError("split.branch", f"contains a forbidden character: {name!r}")

    if name.endswith("/") or name.endswith(".") or name.endswith(".lock"):
        raise ValidationError("split.branch", f"has a forbidden ending: {name!r}")

    for component in name.split("/"):
        if not component or component.startswith("."):
            raise ValidationError("split.branch", f"has an empty or hidden component: {name!r}")
