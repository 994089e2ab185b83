import json
import os
import sys

import pytest

from gallery_tools import registry, sync
from gallery_tools.registry import FolderTime
from gallery_tools.sync import reconcile_collection, reconcile_wall, run_sync

from conftest import read_json, touch


def snapshot(site):
    return {
        p.relative_to(site).as_posix(): p.read_bytes()
        for p in sorted(site.rglob("*.json"))
    }


def test_wall_manifest_descending(site):
    for name in ["1.jpg", "2.jpg", "10.jpg"]:
        touch(site / "WALL" / name)

    assert reconcile_wall(site)
    assert read_json(site / "images.json") == [
        {"src": "WALL/10.jpg", "alt": "10"},
        {"src": "WALL/2.jpg", "alt": "2"},
        {"src": "WALL/1.jpg", "alt": "1"},
    ]
    assert not reconcile_wall(site)


def test_wall_manifest_order_in_file_does_not_matter(site):
    for name in ["1.jpg", "2.jpg"]:
        touch(site / "WALL" / name)
    (site / "images.json").write_text(json.dumps({"images": [{"src": "WALL/1.jpg"}, {"src": "WALL/2.jpg"}]}),
                                      encoding="utf-8")
    assert not reconcile_wall(site)


def test_wall_missing_folder_writes_empty_manifest(tmp_path):
    assert reconcile_wall(tmp_path)
    assert read_json(tmp_path / "images.json") == []
    assert not reconcile_wall(tmp_path)


def test_wall_corrupt_manifest_self_heals(site):
    touch(site / "WALL" / "1.jpg")
    (site / "images.json").write_text('[{"src": "WALL/1.j', encoding="utf-8")
    assert reconcile_wall(site)
    assert read_json(site / "images.json") == [{"src": "WALL/1.jpg", "alt": "1"}]


def test_collection_round_trip(site):
    folder = site / "collections" / "trip"
    for name in ["b.jpg", "a.png", "c.gif", "readme.txt"]:
        touch(folder / name)

    assert reconcile_collection(site, "trip")
    assert read_json(folder / "images.json") == [
        {"src": "collections/trip/a.png", "alt": "a"},
        {"src": "collections/trip/b.jpg", "alt": "b"},
        {"src": "collections/trip/c.gif", "alt": "c"},
    ]
    assert not reconcile_collection(site, "trip")


def test_empty_collection_gets_empty_manifest(site):
    (site / "collections" / "empty").mkdir()
    assert reconcile_collection(site, "empty")
    assert read_json(site / "collections" / "empty" / "images.json") == []
    assert not reconcile_collection(site, "empty")


def test_collection_detects_added_and_removed_images(site):
    folder = site / "collections" / "c"
    touch(folder / "1.jpg")
    reconcile_collection(site, "c")

    touch(folder / "2.jpg")
    assert reconcile_collection(site, "c")
    (folder / "1.jpg").unlink()
    assert reconcile_collection(site, "c")
    assert read_json(folder / "images.json") == [{"src": "collections/c/2.jpg", "alt": "2"}]


def test_full_pass_is_idempotent(site):
    for name in ["1.jpg", "2.jpg", "10.jpg"]:
        touch(site / "WALL" / name)
    for cid in ["_wall", "spring", "a b"]:
        touch(site / "collections" / cid / "x.jpg")
    (site / "collections" / "empty").mkdir()

    assert run_sync(site)
    first = snapshot(site)

    assert not run_sync(site)
    assert snapshot(site) == first


def test_removed_collection_folder(site, monkeypatch):
    touch(site / "collections" / "keep" / "1.jpg")
    touch(site / "collections" / "gone" / "1.jpg")
    run_sync(site)

    for p in (site / "collections" / "gone").iterdir():
        p.unlink()
    (site / "collections" / "gone").rmdir()

    seen = []
    real = sync.reconcile_collection

    def spy(repo_root, cid):
        seen.append(cid)
        return real(repo_root, cid)

    monkeypatch.setattr(sync, "reconcile_collection", spy)

    assert run_sync(site)
    assert [r["id"] for r in read_json(site / "collections.json")] == ["keep"]
    assert seen == ["keep"]


def test_renamed_collection_folder(site):
    touch(site / "collections" / "old" / "1.jpg")
    run_sync(site)

    (site / "collections" / "old").rename(site / "collections" / "new")

    assert run_sync(site)
    assert read_json(site / "collections.json") == [
        {"id": "new", "name": "new", "path": "collection.html?collection=new"},
    ]
    assert read_json(site / "collections" / "new" / "images.json") == [
        {"src": "collections/new/1.jpg", "alt": "1"},
    ]


@pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0,
                    reason="needs POSIX permissions enforced for a non-root user")
def test_unreadable_collection_does_not_abort_pass(site, monkeypatch, capsys):
    locked = site / "collections" / "a_locked"
    touch(locked / "1.jpg")
    touch(site / "collections" / "z_good" / "1.jpg")
    # locked collection is processed first
    monkeypatch.setattr(registry, "folder_timestamp",
                        lambda path: FolderTime(0.0 if path.name == "a_locked" else 1.0, True))

    locked.chmod(0)
    try:
        assert run_sync(site)
    finally:
        locked.chmod(0o755)

    assert read_json(site / "collections" / "z_good" / "images.json") == [
        {"src": "collections/z_good/1.jpg", "alt": "1"},
    ]
    assert not (locked / "images.json").exists()
    assert 'collection "a_locked"' in capsys.readouterr().err


@pytest.mark.skipif(sys.platform in ("win32", "darwin"),
                    reason="filesystem must accept non-UTF-8 filenames")
def test_undecodable_filename_is_skipped(site, capsys):
    bad = site / "collections" / "a_bad"
    touch(bad / "1.jpg")
    touch(site / "collections" / "z_good" / "1.jpg")
    try:
        fd = os.open(os.path.join(os.fsencode(bad), b"\xff\xfe.jpg"), os.O_CREAT | os.O_WRONLY)
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 filenames")
    os.close(fd)

    run_sync(site)

    assert read_json(bad / "images.json") == [{"src": "collections/a_bad/1.jpg", "alt": "1"}]
    assert read_json(site / "collections" / "z_good" / "images.json") == [
        {"src": "collections/z_good/1.jpg", "alt": "1"},
    ]
    assert "not valid UTF-8" in capsys.readouterr().out


def test_non_image_never_listed(site):
    touch(site / "collections" / "c" / "notes.txt")
    touch(site / "collections" / "c" / "pic.webp")
    run_sync(site)
    srcs = [e["src"] for e in read_json(site / "collections" / "c" / "images.json")]
    assert srcs == ["collections/c/pic.webp"]
