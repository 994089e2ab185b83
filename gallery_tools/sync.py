#!/usr/bin/env python3
"""
Sync WALL/ and collections/ with their JSON indexes.

Passes, in order:
- WALL/ -> images.json (newest-first, i.e. descending by name)
- collections/* -> collections.json (add new folders, drop deleted ones)
- collections/<id>/ -> collections/<id>/images.json (ascending by name)

Manifests are only rewritten when the file list on disk differs from the
one recorded, so a second run with no changes writes nothing.

Usage:
  python3 -m gallery_tools.sync --repo-root .
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .manifest import (
    WALL_MANIFEST_REL,
    WALL_REL,
    build_entries,
    collection_dir,
    collection_manifest,
    collection_prefix,
    read_manifest,
    scan_images,
    sort_names,
    srcs_under,
    wall_prefix,
    write_manifest,
)
from .registry import reconcile_registry


def reconcile_wall(repo_root: Path) -> bool:
    files = scan_images(repo_root / WALL_REL, descending=True)
    current = read_manifest(repo_root / WALL_MANIFEST_REL)

    if current.ok and sort_names(current.names, descending=True) == files:
        print("[wall] No changes")
        return False

    if not current.ok:
        print(f"[wall] {WALL_MANIFEST_REL} {current.state}, generating")
    else:
        print(f"[wall] Image changes detected, regenerating {WALL_MANIFEST_REL}")
    write_manifest(repo_root / WALL_MANIFEST_REL, build_entries(wall_prefix(), files))
    print(f"[wall] Wrote {len(files)} image(s)")
    return True


def reconcile_collection(repo_root: Path, cid: str) -> bool:
    folder = collection_dir(repo_root, cid)
    manifest_path = collection_manifest(repo_root, cid)
    prefix = collection_prefix(cid)

    files = scan_images(folder)
    current = read_manifest(manifest_path)

    if current.ok and srcs_under(current, prefix) and sort_names(current.names) == files:
        return False

    if not current.ok:
        print(f'[collections] "{cid}": manifest {current.state}, generating')
    elif not srcs_under(current, prefix):
        print(f'[collections] "{cid}": folder was renamed, regenerating')
    else:
        print(f'[collections] "{cid}": image changes detected, regenerating')

    # Creating the manifest would bump the folder mtime, which is the
    # collection order key on platforms without a birth time.
    st = os.stat(folder)
    created = not manifest_path.exists()
    write_manifest(manifest_path, build_entries(prefix, files))
    if created:
        os.utime(folder, ns=(st.st_atime_ns, st.st_mtime_ns))

    print(f'[collections] "{cid}": wrote {len(files)} image(s)')
    return True


def run_sync(repo_root: Path) -> bool:
    """Full pass. Returns True if any file was (re)written."""
    print(f"[sync] Repo: {repo_root}")
    changed = reconcile_wall(repo_root)

    update = reconcile_registry(repo_root)
    changed = update.changed or changed

    for rec in update.records:
        try:
            if reconcile_collection(repo_root, rec.id):
                changed = True
        except (OSError, UnicodeError) as e:
            print(f'[error] collection "{rec.id}": {e}', file=sys.stderr)

    if not changed:
        print("[sync] Nothing to update.")
    return changed


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root containing WALL/ and collections/ (default: .)")
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    try:
        run_sync(repo_root)
    except Exception as e:
        print(f"[error] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
