from pathlib import Path

import pytest

from kiln.core.target import Asset, Target, TargetKind, is_cxx_source, split_flags


def test__Asset__parse() -> None:
    assert Asset.parse("res/font.ttf") == Asset(Path("res/font.ttf"))
    assert Asset.parse("res/font.ttf:fonts/default.ttf") == Asset(Path("res/font.ttf"), Path("fonts/default.ttf"))
    with pytest.raises(ValueError):
        Asset.parse(":nowhere")


def test__Target__converts_sources_and_assets() -> None:
    target = Target(
        "app", TargetKind.EXECUTABLE, sources=["src/main.cpp"], assets=["res/a.png"]  # type: ignore[list-item]
    )
    assert target.sources == [Path("src/main.cpp")]
    assert target.assets == [Asset(Path("res/a.png"))]
    assert target.is_linked
    assert not Target("objs", TargetKind.OBJECTS).is_linked


def test__Target__add_sources__ignores_duplicates() -> None:
    target = Target("lib", TargetKind.STATIC_LIBRARY)
    target.add_sources("a.c", "b.c")
    target.add_sources("a.c", Path("c.c"))
    assert target.sources == [Path("a.c"), Path("b.c"), Path("c.c")]


def test__is_cxx_source() -> None:
    assert is_cxx_source(Path("a.cpp"))
    assert is_cxx_source(Path("a.cc"))
    assert not is_cxx_source(Path("a.c"))
    assert not is_cxx_source(Path("a.m"))


def test__split_flags() -> None:
    assert split_flags("-lfreetype  -lpng -DNAME='hello world'") == ["-lfreetype", "-lpng", "-DNAME=hello world"]
