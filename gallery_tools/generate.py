#!/usr/bin/env python3
"""
Regenerate a single images.json unconditionally.

Usage:
  python3 -m gallery_tools.generate wall --repo-root .
  python3 -m gallery_tools.generate collection "Spring 2024" --repo-root .

"collection" creates collections/<name>/ if it does not exist yet.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .manifest import (
    WALL_MANIFEST_REL,
    WALL_REL,
    build_entries,
    collection_dir,
    collection_manifest,
    collection_prefix,
    scan_images,
    wall_prefix,
    write_manifest,
)


def generate_wall(repo_root: Path) -> List[str]:
    files = scan_images(repo_root / WALL_REL, descending=True)
    out = repo_root / WALL_MANIFEST_REL
    write_manifest(out, build_entries(wall_prefix(), files))
    print(f"[wall] Wrote {out} ({len(files)} image(s))")
    return files


def generate_collection(repo_root: Path, cid: str) -> List[str]:
    if not cid:
        raise ValueError("collection name is required")
    folder = collection_dir(repo_root, cid)
    if not folder.is_dir():
        folder.mkdir(parents=True, exist_ok=True)
        print(f"[collections] Created folder {folder}")

    files = scan_images(folder)
    out = collection_manifest(repo_root, cid)
    write_manifest(out, build_entries(collection_prefix(cid), files))
    print(f"[collections] Wrote {out} ({len(files)} image(s))")
    return files


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root (default: .)")
    sub = ap.add_subparsers(dest="target", required=True)
    sub.add_parser("wall", help="Regenerate images.json from WALL/")
    col = sub.add_parser("collection", help="Regenerate collections/<name>/images.json")
    col.add_argument("name", help='Collection folder name, e.g. "Spring 2024"')
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    try:
        if args.target == "wall":
            generate_wall(repo_root)
        else:
            generate_collection(repo_root, args.name)
    except Exception as e:
        print(f"[error] Failed to generate images.json: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
