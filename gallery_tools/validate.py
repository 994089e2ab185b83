#!/usr/bin/env python3
"""
Validate the site's gallery index integrity.

Checks:
- images.json, collections.json and every collections/<id>/images.json parse
- every manifest entry points at a file that exists
- registry ids are unique and each has a folder
- every collection folder has a manifest
- reports images on disk missing from their manifest (warn)
- reports collection folders missing from collections.json (warn)

Optional:
- --check-images opens every raster image with Pillow and verifies it decodes

Usage:
  python3 -m gallery_tools.validate --repo-root .
  python3 -m gallery_tools.validate --repo-root . --check-images

Exit code:
  0 if OK (no errors)
  1 if errors found
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

from PIL import Image, UnidentifiedImageError

from .manifest import (
    WALL_MANIFEST_REL,
    WALL_REL,
    collection_dir,
    collection_manifest,
    read_manifest,
    scan_images,
)
from .registry import REGISTRY_REL, list_collection_dirs


def verify_image(path: Path) -> str | None:
    """Returns an error message, or None if Pillow can decode the file."""
    if path.suffix.lower() == ".svg":
        return None
    try:
        with Image.open(path) as img:
            img.verify()
    except (OSError, UnidentifiedImageError, SyntaxError) as e:
        return str(e) or type(e).__name__
    return None


def check_manifest(repo_root: Path, manifest_path: Path, folder: Path,
                   errors: List[str], warnings: List[str], check_images: bool) -> int:
    rel = manifest_path.relative_to(repo_root).as_posix()
    read = read_manifest(manifest_path)
    if read.state == "absent":
        return -1
    if not read.ok:
        errors.append(f"Failed to parse {rel}")
        return 0

    listed = set()
    for src in read.srcs:
        target = repo_root / src
        listed.add(target.name)
        if not target.is_file():
            errors.append(f"{rel}: missing file on disk: {src}")
        elif check_images:
            err = verify_image(target)
            if err:
                errors.append(f"{rel}: unreadable image {src}: {err}")

    for name in scan_images(folder):
        if name not in listed:
            warnings.append(f"{rel}: {name} on disk but not listed (run sync)")
    return len(read.srcs)


def load_registry_raw(path: Path) -> Tuple[List[Dict[str, Any]] | None, str | None]:
    if not path.exists():
        return None, None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        return None, f"Failed to parse {REGISTRY_REL}: {e}"
    if not isinstance(data, list):
        return None, f"{REGISTRY_REL} is not a list"
    return data, None


def validate_repo(repo_root: Path, check_images: bool = False) -> Tuple[Dict[str, Any], int]:
    errors: List[str] = []
    warnings: List[str] = []

    # WALL
    wall_count = check_manifest(repo_root, repo_root / WALL_MANIFEST_REL, repo_root / WALL_REL,
                                errors, warnings, check_images)
    if wall_count < 0:
        if scan_images(repo_root / WALL_REL):
            warnings.append(f"Missing {WALL_MANIFEST_REL} (run sync)")
        wall_count = 0

    # Registry
    dirs = list_collection_dirs(repo_root)
    registry, err = load_registry_raw(repo_root / REGISTRY_REL)
    if err:
        errors.append(err)
    elif registry is None:
        if dirs:
            warnings.append(f"Missing {REGISTRY_REL} (run sync)")
        registry = []

    seen_ids = set()
    for i, rec in enumerate(registry or []):
        cid = rec.get("id") if isinstance(rec, dict) else None
        if not cid or not isinstance(cid, str):
            errors.append(f"{REGISTRY_REL}: entry at index {i} missing valid 'id'")
            continue
        if cid in seen_ids:
            errors.append(f"{REGISTRY_REL}: duplicate id: {cid}")
        seen_ids.add(cid)
        if cid not in dirs:
            errors.append(f"{REGISTRY_REL}: {cid} has no folder under collections/")

    # Collections
    image_counts: Dict[str, int] = {}
    for cid in dirs:
        if cid not in seen_ids:
            warnings.append(f"Collection folder not in {REGISTRY_REL}: {cid} (run sync)")
        count = check_manifest(repo_root, collection_manifest(repo_root, cid), collection_dir(repo_root, cid),
                               errors, warnings, check_images)
        if count < 0:
            errors.append(f"{cid}: missing collections/{cid}/images.json")
            count = 0
        image_counts[cid] = count

    report = {
        "errors": errors,
        "warnings": warnings,
        "wall_count": wall_count,
        "collections": image_counts,
    }
    code = 1 if errors else 0
    return report, code


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root (default: .)")
    ap.add_argument("--check-images", action="store_true", help="Decode every raster image with Pillow")
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    report, code = validate_repo(repo_root, check_images=args.check_images)

    print("\n=== VALIDATE REPORT ===")
    print(f"\nWALL: {report['wall_count']} image(s)")
    for cid, n in report["collections"].items():
        print(f"  {cid}: {n} image(s)")

    if report["errors"]:
        print(f"\nErrors ({len(report['errors'])}):")
        for e in report["errors"]:
            print(f"  - {e}")
    else:
        print("\nErrors (0): none ✅")

    if report["warnings"]:
        print(f"\nWarnings ({len(report['warnings'])}):")
        for w in report["warnings"]:
            print(f"  - {w}")
    else:
        print("\nWarnings (0): none ✅")

    sys.exit(code)


if __name__ == "__main__":
    main()
