"""
Image folder scanning and images.json manifest read/write.

A manifest is a JSON array of {"src": ..., "alt": ...} entries, one per
image in a folder. Older manifests wrapped the array as {"images": [...]};
both shapes are read, only the bare array is written.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Tuple


IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"}

WALL_REL = Path("WALL")
WALL_MANIFEST_REL = Path("images.json")
COLLECTIONS_REL = Path("collections")
COLLECTION_MANIFEST_NAME = "images.json"

_DIGITS = re.compile(r"(\d+)")


# ----------------------------
# Scanning
# ----------------------------
def natural_key(name: str) -> Tuple[Tuple[Any, ...], str]:
    """
    Numeric-aware sort key: "2.jpg" < "10.jpg".

    re.split with a capture group alternates text / digits starting with
    text, so positions line up between keys and ints only meet ints.
    """
    parts = _DIGITS.split(name)
    key = tuple(int(p) if i % 2 else p.casefold() for i, p in enumerate(parts))
    return key, name


def is_image(name: str) -> bool:
    return Path(name).suffix.lower() in IMAGE_EXTS


def sort_names(names: Iterable[str], descending: bool = False) -> List[str]:
    return sorted(names, key=natural_key, reverse=descending)


def encodable(name: str) -> bool:
    # undecodable bytes in a filename come back from iterdir as lone surrogates
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def scan_images(folder: Path, descending: bool = False,
                exclude: Iterable[str] = (COLLECTION_MANIFEST_NAME,)) -> List[str]:
    # missing folder just means no images yet
    if not folder.is_dir():
        return []
    skip = set(exclude)
    names = []
    for p in folder.iterdir():
        if not (p.is_file() and p.name not in skip and is_image(p.name)):
            continue
        if not encodable(p.name):
            print(f"[warn] Skipping {p.name!r} in {folder.name}: filename is not valid UTF-8")
            continue
        names.append(p.name)
    return sort_names(names, descending=descending)


# ----------------------------
# Reading
# ----------------------------
OK = "ok"
ABSENT = "absent"
UNPARSEABLE = "unparseable"


@dataclass
class ManifestRead:
    state: str
    srcs: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == OK

    @property
    def names(self) -> List[str]:
        return [src_basename(s) for s in self.srcs]


def src_basename(src: str) -> str:
    return PurePosixPath(src.replace("\\", "/")).name


def _entries_of(data: Any) -> List[Any] | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("images"), list):
        return data["images"]
    return None


def read_manifest(path: Path) -> ManifestRead:
    if not path.exists():
        return ManifestRead(ABSENT)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError):
        return ManifestRead(UNPARSEABLE)

    entries = _entries_of(data)
    if entries is None:
        return ManifestRead(UNPARSEABLE)

    srcs = [
        e["src"] for e in entries
        if isinstance(e, dict) and isinstance(e.get("src"), str) and e["src"]
    ]
    return ManifestRead(OK, srcs)


def srcs_under(read: ManifestRead, prefix: str) -> bool:
    """False if any entry points outside prefix (folder renamed since generation)."""
    return all(s.startswith(prefix) for s in read.srcs)


# ----------------------------
# Writing
# ----------------------------
def build_entries(prefix: str, names: Iterable[str]) -> List[Dict[str, str]]:
    return [{"src": f"{prefix}{n}", "alt": Path(n).stem} for n in names]


def save_json(path: Path, data: Any) -> None:
    # encode first so a bad string fails before the target is truncated
    raw = (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(raw)


def write_manifest(path: Path, entries: List[Dict[str, str]]) -> None:
    save_json(path, entries)


def wall_prefix() -> str:
    return f"{WALL_REL.as_posix()}/"


def collection_prefix(cid: str) -> str:
    return f"{COLLECTIONS_REL.as_posix()}/{cid}/"


def collection_dir(repo_root: Path, cid: str) -> Path:
    return repo_root / COLLECTIONS_REL / cid


def collection_manifest(repo_root: Path, cid: str) -> Path:
    return collection_dir(repo_root, cid) / COLLECTION_MANIFEST_NAME
