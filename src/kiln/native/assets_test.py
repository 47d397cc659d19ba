from pathlib import Path

import pytest

from kiln.core.errors import AssetNotFoundError
from kiln.native.assets import copy_asset


def test__copy_asset__creates_parents_and_replaces_destination(tmp_path: Path) -> None:
    source = tmp_path / "res" / "font.ttf"
    source.parent.mkdir()
    source.write_bytes(b"\x00\x01font")
    destination = tmp_path / "build" / "bin" / "res" / "font.ttf"

    copy_asset(source, destination)
    assert destination.read_bytes() == b"\x00\x01font"

    source.write_bytes(b"new")
    copy_asset(source, destination)
    assert destination.read_bytes() == b"new"


def test__copy_asset__missing_source(tmp_path: Path) -> None:
    with pytest.raises(AssetNotFoundError) as excinfo:
        copy_asset(tmp_path / "nope.png", tmp_path / "out.png")
    assert isinstance(excinfo.value, OSError)
    assert not (tmp_path / "out.png").exists()
