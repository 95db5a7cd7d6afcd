#!/usr/bin/env python3
"""git-history-split CLI entry point for running from a source checkout."""

from subsplit.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
