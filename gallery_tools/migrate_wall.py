#!/usr/bin/env python3
"""
One-time migration: copy the root WALL/ folder into collections/_wall/.

WALL/ itself is left in place; delete it by hand once the copy looks right,
then run a sync so collections.json picks up "_wall".

Usage:
  python3 -m gallery_tools.migrate_wall --repo-root .
"""

from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import List

from .manifest import COLLECTIONS_REL, WALL_REL


WALL_COLLECTION_ID = "_wall"


def migrate_wall(repo_root: Path) -> List[str]:
    src_dir = repo_root / WALL_REL
    dst_dir = repo_root / COLLECTIONS_REL / WALL_COLLECTION_ID
    if not src_dir.is_dir():
        print("[migrate] No WALL folder. Nothing to migrate.")
        return []

    dst_dir.mkdir(parents=True, exist_ok=True)
    copied: List[str] = []
    for p in sorted(src_dir.iterdir()):
        if p.is_file():
            shutil.copy2(p, dst_dir / p.name)
            copied.append(p.name)
            print(f"  copied {p.name}")

    print(f"\n[migrate] Copied {len(copied)} file(s) to {COLLECTIONS_REL / WALL_COLLECTION_ID}.")
    print("[migrate] Remove WALL/ manually if you no longer need it, then run a sync.")
    return copied


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root (default: .)")
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    try:
        migrate_wall(repo_root)
    except OSError as e:
        print(f"[error] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
