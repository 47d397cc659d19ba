import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from kiln.cli.main import main
from kiln.testing import chdir_context

BUILD_SCRIPT = """
from kiln.core.target import TargetKind
from kiln.native.session import BuildSession

session = BuildSession.current()
core = session.target("core", TargetKind.OBJECTS)
app = session.target("app", TargetKind.EXECUTABLE, sources=["main.cpp"], includes=["include"], link_libraries=[core])
session.external("freetype", "libs/freetype", install_artifact="lib/libfreetype.a")
"""


@pytest.fixture
def project_dir(tempdir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    for name in ("PLATFORM", "BUILD_TYPE", "BUILD_DIR", "VERBOSE", "KILN_JOBS"):
        monkeypatch.delenv(name, raising=False)
    (tempdir / ".kiln.py").write_text(BUILD_SCRIPT)
    with chdir_context(tempdir):
        yield tempdir


def _main(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv=list(argv))
    assert isinstance(excinfo.value.code, int)
    return excinfo.value.code


def test__main__ls(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _main("ls") == 0
    out = capsys.readouterr().out
    assert "core" in out
    assert "app" in out
    assert "freetype" in out
    assert "install" in out


def test__main__compile_command(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _main("compile-command", "--build-type", "debug", "app", "main.cpp") == 0
    out = capsys.readouterr().out.strip()
    assert out == (
        "clang++-15 -g -O0 -c -Iinclude -MD -MF build-desktop-debug/dep/app/main.d "
        "-o build-desktop-debug/obj/app/main.o main.cpp"
    )


def test__main__compile_commands(project_dir: Path) -> None:
    assert _main("compile-commands", "app", "-o", "out.json") == 0
    entries = json.loads((project_dir / "out.json").read_text())
    assert [e["file"] for e in entries] == ["main.cpp"]


def test__main__run_empty_objects_target(project_dir: Path) -> None:
    assert _main("run", "-b", "out", "core") == 0


def test__main__unknown_target_is_a_configuration_error(project_dir: Path) -> None:
    assert _main("run", "nope") == 1
    assert _main("run", "app:install") == 1


def test__main__broken_build_script(project_dir: Path) -> None:
    (project_dir / ".kiln.py").write_text("raise ValueError('oops')\n")
    assert _main("ls") == 2


def test__main__missing_build_script(project_dir: Path) -> None:
    assert _main("ls", "-f", "missing.py") == 2
