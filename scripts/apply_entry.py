#!/usr/bin/env python
"""Add one entry to a local Keep a Changelog file.

Usage:
  python scripts/apply_entry.py --category Fixed --description "Crash on empty input"
  python scripts/apply_entry.py -c added -d "Dark mode" --file docs/CHANGELOG.md --write

Prints the updated changelog unless --write is given. A missing file is
created from the canonical skeleton.
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

# Ensure project root on path for direct execution
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from pydantic import ValidationError  # noqa: E402

from domain.models import ChangelogEntry  # noqa: E402
from suggester.core import generate_updated_changelog  # noqa: E402


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("-c", "--category", required=True, help="Added, Changed, Deprecated, Removed, Fixed or Security")
    p.add_argument("-d", "--description", required=True)
    p.add_argument("-f", "--file", default="CHANGELOG.md", help="Changelog path (default: CHANGELOG.md)")
    p.add_argument("--write", action="store_true", help="Write the file in place instead of printing it")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        entry = ChangelogEntry(category=args.category, description=args.description)
    except ValidationError as exc:
        print(f"Invalid entry: {exc.errors()[0]['msg']}", file=sys.stderr)
        return 2

    path = Path(args.file)
    # newline="" keeps CRLF files intact
    current = None
    if path.exists():
        with path.open(encoding="utf-8", newline="") as fh:
            current = fh.read()
    updated = generate_updated_changelog(current, entry)

    if args.write:
        path.write_text(updated, encoding="utf-8", newline="")
        print(f"{path}: added '{entry.description}' under {entry.category}")
    else:
        sys.stdout.write(updated)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
