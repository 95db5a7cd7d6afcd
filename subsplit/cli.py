# subsplit/cli.py
"""git-history-split CLI.

Prints the id of the split commit matching the requested revision on stdout.
Progress, warnings and errors go to stderr.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from subsplit.config import ConfigError, default_schema_path, load_config
from subsplit.dryrun import build_entries, render_dryrun_report
from subsplit.engine import EngineError, plan_split, split_history
from subsplit.mapping import MappingError
from subsplit.progress import ProgressReporter
from subsplit.repo import GitRepositoryError, GitStore, ensure_git_repository
from subsplit.validation import ValidationError, validate_config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-history-split",
        description="Extract the history of one subdirectory into a standalone commit graph",
    )

    parser.add_argument(
        "rev",
        nargs="?",
        default=None,
        help="Revision to split from (default: HEAD)",
    )
    parser.add_argument(
        "--repo",
        default=".",
        help="Path to the source git repository",
    )
    parser.add_argument(
        "--prefix",
        help="Subdirectory whose history is extracted",
    )
    parser.add_argument(
        "--onto",
        help="Existing split history to reuse; commits it already covers are not recreated",
    )
    parser.add_argument(
        "--branch",
        help="Create or fast-forward this branch to the split result",
    )
    parser.add_argument(
        "--config",
        help="Path to split policy YAML",
    )
    parser.add_argument(
        "--schema",
        default=str(default_schema_path()),
        help="Path to schema.json",
    )
    parser.add_argument(
        "--map-file",
        help="Write the original -> split commit map as JSON to this path",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the commits that would be synthesized without creating any",
    )
    parser.add_argument(
        "--hash-len",
        type=int,
        default=12,
        help="Number of characters to show for commit hash in the dry run report",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print progress",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if int(args.hash_len) <= 0:
        print("error: --hash-len must be a positive integer", file=sys.stderr)
        return 2

    if args.config is None and args.prefix is None:
        print("error: --prefix is required unless --config provides split.prefix", file=sys.stderr)
        return 2

    repo_path = Path(args.repo).expanduser().resolve()
    config_path = Path(args.config).expanduser().resolve() if args.config else None
    schema_path = Path(args.schema).expanduser().resolve()

    overrides = {
        "split": {
            "prefix": args.prefix,
            "rev": args.rev,
            "onto": args.onto,
            "branch": args.branch,
        },
        "output": {
            "progress": False if args.quiet else None,
            "map_file": args.map_file,
        },
    }

    try:
        cfg = load_config(config_path, schema_path, overrides)
        validated = validate_config(cfg)

        ensure_git_repository(repo_path)
        store = GitStore(repo_path)

        if args.dry_run:
            plan = plan_split(store, validated.prefix, validated.rev, onto=validated.onto)
            entries = build_entries(plan, hash_len=int(args.hash_len))

            report = render_dryrun_report(
                prefix=validated.prefix,
                start=validated.rev,
                onto=validated.onto,
                entries=entries,
                hash_len=int(args.hash_len),
            )

            print(report)
            return 0

        reporter = ProgressReporter(enabled=validated.progress)
        try:
            result = split_history(
                store,
                validated.prefix,
                validated.rev,
                onto=validated.onto,
                observer=reporter,
            )
        finally:
            reporter.finish()

        if result.head is None:
            print(f"error: no commits touch '{validated.prefix}'", file=sys.stderr)
            return 1

        if validated.map_file is not None:
            result.table.write_json(validated.map_file)

        if validated.branch is not None:
            old = store.update_branch(validated.branch, result.head)
            action = "Created" if old is None else "Updated"
            print(f"{action} branch '{validated.branch}'", file=sys.stderr)

        print(result.head)
        return 0

    except (ConfigError, ValidationError, GitRepositoryError, MappingError, EngineError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
