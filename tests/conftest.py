import json
from pathlib import Path

import pytest


def touch(path: Path, data: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def site(tmp_path: Path) -> Path:
    (tmp_path / "WALL").mkdir()
    (tmp_path / "collections").mkdir()
    return tmp_path
