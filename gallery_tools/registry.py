"""
collections.json: the ordered list of known collections.

Each collection is a subfolder of collections/. Records are added when a
folder first appears and dropped when it disappears. The list is ordered
with reserved ids ("_wall" etc.) first, then by folder creation time.
The file is rewritten wholesale; keys beyond id/name/path are carried
through, items without a string id are dropped.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from .manifest import COLLECTIONS_REL, encodable, save_json


REGISTRY_REL = Path("collections.json")
COLLECTION_PAGE = "collection.html"
RESERVED_PREFIX = "_"


@dataclass
class CollectionRecord:
    id: str
    name: str
    path: str
    # any other keys an operator added (cover image, description...), written back as-is
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, cid: str) -> "CollectionRecord":
        return cls(id=cid, name=cid, path=collection_path(cid))

    @classmethod
    def from_json(cls, d: Dict[str, Any]) -> "CollectionRecord":
        cid = d["id"]
        name = d.get("name")
        return cls(
            id=cid,
            name=name if isinstance(name, str) and name else cid,
            path=d.get("path") if isinstance(d.get("path"), str) else "",
            extra={k: v for k, v in d.items() if k not in ("id", "name", "path")},
        )

    def to_json(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "path": self.path, **self.extra}


@dataclass
class FolderTime:
    seconds: float
    precise: bool  # False when st_birthtime is unavailable and mtime was used


@dataclass
class RegistryUpdate:
    records: List[CollectionRecord] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: bool = False


def collection_path(cid: str) -> str:
    return f"{COLLECTION_PAGE}?collection={quote(cid, safe='')}"


def is_reserved(cid: str) -> bool:
    return cid.startswith(RESERVED_PREFIX)


def list_collection_dirs(repo_root: Path) -> List[str]:
    root = repo_root / COLLECTIONS_REL
    if not root.is_dir():
        return []
    names = []
    for p in root.iterdir():
        if not p.is_dir():
            continue
        if not encodable(p.name):
            print(f"[warn] Skipping collection folder {p.name!r}: name is not valid UTF-8")
            continue
        names.append(p.name)
    return sorted(names)


def folder_timestamp(path: Path) -> FolderTime:
    """
    Creation time where the platform reports one (macOS, BSD, Windows).

    Elsewhere (most Linux filesystems through os.stat) fall back to the
    modification time. That is coarser: a folder's mtime moves whenever
    files are added to or removed from it, so collection order can shift
    after edits.
    """
    st = os.stat(path)
    birth = getattr(st, "st_birthtime", None)
    if birth is not None:
        return FolderTime(float(birth), True)
    return FolderTime(st.st_mtime, False)


def order_key(repo_root: Path, cid: str) -> Tuple[int, float, str]:
    ts = folder_timestamp(repo_root / COLLECTIONS_REL / cid)
    return (0 if is_reserved(cid) else 1, ts.seconds, cid)


def read_registry_json(path: Path) -> Optional[List[Any]]:
    """The registry file's raw JSON list, or None when absent or unparseable."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError):
        print(f"[registry] {path.name} unreadable, rebuilding")
        return None
    if not isinstance(data, list):
        print(f"[registry] {path.name} is not a list, rebuilding")
        return None
    return data


def records_from_json(data: List[Any]) -> List[CollectionRecord]:
    # items that are not objects or lack a string id are dropped
    return [
        CollectionRecord.from_json(d) for d in data
        if isinstance(d, dict) and isinstance(d.get("id"), str) and d["id"]
    ]


def load_registry(path: Path) -> Optional[List[CollectionRecord]]:
    data = read_registry_json(path)
    return None if data is None else records_from_json(data)


def save_registry(path: Path, records: List[CollectionRecord]) -> None:
    save_json(path, [r.to_json() for r in records])


def reconcile_registry(repo_root: Path) -> RegistryUpdate:
    registry_path = repo_root / REGISTRY_REL
    dirs = list_collection_dirs(repo_root)
    raw = read_registry_json(registry_path)
    existing = records_from_json(raw or [])

    by_id: Dict[str, CollectionRecord] = {}
    update = RegistryUpdate()

    for rec in existing:
        if rec.id not in dirs:
            update.removed.append(rec.id)
            print(f"[registry] Removed collection: {rec.id}")
            continue
        if rec.id in by_id:
            # duplicate id, first one wins
            continue
        by_id[rec.id] = CollectionRecord(rec.id, rec.name, collection_path(rec.id), rec.extra)

    for cid in dirs:
        if cid not in by_id:
            by_id[cid] = CollectionRecord.new(cid)
            update.added.append(cid)
            print(f"[registry] New collection: {cid}")

    ordered = sorted(by_id.values(), key=lambda r: order_key(repo_root, r.id))
    update.records = ordered

    # compared against the file as written, so dropped junk items count as a change
    after = [r.to_json() for r in ordered]
    if raw != after:
        save_registry(registry_path, ordered)
        update.changed = True
        print(f"[registry] Wrote {REGISTRY_REL} ({len(ordered)} collection(s))")
    return update
