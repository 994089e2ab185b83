import json

from PIL import Image

from gallery_tools.generate import generate_collection, generate_wall
from gallery_tools.migrate_wall import migrate_wall
from gallery_tools.sync import run_sync
from gallery_tools.validate import validate_repo, verify_image

from conftest import read_json, touch


def test_generate_wall_always_writes(site):
    touch(site / "WALL" / "1.jpg")
    touch(site / "WALL" / "3.jpg")
    assert generate_wall(site) == ["3.jpg", "1.jpg"]
    assert read_json(site / "images.json")[0] == {"src": "WALL/3.jpg", "alt": "3"}


def test_generate_collection_creates_folder(site):
    assert generate_collection(site, "new one") == []
    assert read_json(site / "collections" / "new one" / "images.json") == []


def test_migrate_wall_copies_files(site):
    touch(site / "WALL" / "1.jpg", b"one")
    touch(site / "WALL" / "notes.txt")
    (site / "WALL" / "sub").mkdir()

    assert migrate_wall(site) == ["1.jpg", "notes.txt"]
    assert (site / "collections" / "_wall" / "1.jpg").read_bytes() == b"one"
    assert (site / "WALL" / "1.jpg").exists()


def test_migrate_wall_without_wall(tmp_path):
    assert migrate_wall(tmp_path) == []
    assert not (tmp_path / "collections").exists()


def test_migrated_wall_sorts_first(site):
    touch(site / "collections" / "zzz" / "1.jpg")
    touch(site / "WALL" / "1.jpg")
    migrate_wall(site)
    run_sync(site)
    assert read_json(site / "collections.json")[0]["id"] == "_wall"


def save_png(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (4, 4), (200, 10, 10)).save(path, format="PNG")


def test_validate_clean_site(site):
    save_png(site / "WALL" / "1.png")
    save_png(site / "collections" / "c" / "a.png")
    run_sync(site)

    report, code = validate_repo(site, check_images=True)

    assert code == 0
    assert report["errors"] == []
    assert report["warnings"] == []
    assert report["collections"] == {"c": 1}


def test_validate_reports_missing_file_and_stale_listing(site):
    save_png(site / "collections" / "c" / "a.png")
    run_sync(site)
    (site / "collections" / "c" / "a.png").unlink()
    save_png(site / "collections" / "c" / "b.png")

    report, code = validate_repo(site)

    assert code == 1
    assert any("missing file on disk: collections/c/a.png" in e for e in report["errors"])
    assert any("b.png on disk but not listed" in w for w in report["warnings"])


def test_validate_registry_problems(site):
    (site / "collections" / "c").mkdir()
    (site / "collections.json").write_text(json.dumps([{"id": "x"}, {"id": "x"}]), encoding="utf-8")

    report, code = validate_repo(site)

    assert code == 1
    assert any("duplicate id: x" in e for e in report["errors"])
    assert any("x has no folder" in e for e in report["errors"])
    assert any("c: missing collections/c/images.json" in e for e in report["errors"])
    assert any("not in collections.json: c" in w for w in report["warnings"])


def test_verify_image_detects_corrupt_file(tmp_path):
    bad = touch(tmp_path / "bad.jpg", b"definitely not a jpeg")
    assert verify_image(bad)
    assert verify_image(touch(tmp_path / "vector.svg", b"<svg/>")) is None
