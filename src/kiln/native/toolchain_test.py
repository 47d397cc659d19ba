from pathlib import Path

from kiln.core.config import BuildConfig, BuildType, Platform
from kiln.core.target import Target, TargetKind
from kiln.native.toolchain import Toolchain


def test__Toolchain__for_platform() -> None:
    assert Toolchain.for_platform(Platform.DESKTOP).compiler_for(Path("a.cpp")) == "clang++-15"
    assert Toolchain.for_platform(Platform.DESKTOP).compiler_for(Path("a.c")) == "clang-15"
    assert Toolchain.for_platform(Platform.WEB) == Toolchain("emcc", "emcc", "emcc", "emar")


def test__Toolchain__compile_command() -> None:
    config = BuildConfig(build_type=BuildType.DEBUG, build_dir=Path("build"))
    target = Target(
        "core",
        TargetKind.OBJECTS,
        includes=["include", "libs/imgui"],
        defines=["NDBL_APP_NAME=\"Nodable\"", "IMGUI_USER_CONFIG"],
        compiler_flags=["-Wall"],
        c_flags=["-std=c11"],
        cxx_flags=["-std=c++20"],
    )

    command = Toolchain.for_platform(Platform.DESKTOP).compile_command(
        config, target, Path("src/a.cpp"), Path("build/obj/core/src/a.o"), Path("build/dep/core/src/a.d")
    )
    assert command == [
        "clang++-15",
        "-g",
        "-O0",
        "-Wall",
        "-std=c++20",
        "-c",
        "-Iinclude",
        "-Ilibs/imgui",
        "-DNDBL_APP_NAME=\"Nodable\"",
        "-DIMGUI_USER_CONFIG",
        "-MD",
        "-MF",
        "build/dep/core/src/a.d",
        "-o",
        "build/obj/core/src/a.o",
        "src/a.cpp",
    ]

    c_command = Toolchain.for_platform(Platform.DESKTOP).compile_command(
        config, target, Path("src/b.c"), Path("b.o"), Path("b.d")
    )
    assert c_command[0] == "clang-15"
    assert "-std=c11" in c_command
    assert "-std=c++20" not in c_command


def test__Toolchain__link_and_archive_commands() -> None:
    config = BuildConfig(build_dir=Path("build"))
    target = Target("app", TargetKind.EXECUTABLE, linker_flags=["-lSDL2", "-lGL"])
    toolchain = Toolchain.for_platform(Platform.DESKTOP)

    assert toolchain.link_command(config, target, [Path("a.o"), Path("b.o")], Path("build/bin/app")) == [
        "clang++-15",
        "-O2",
        "-o",
        "build/bin/app",
        "a.o",
        "b.o",
        "-lSDL2",
        "-lGL",
    ]
    assert toolchain.archive_command([Path("a.o")], Path("build/lib/libfw.a")) == [
        "ar",
        "rcs",
        "build/lib/libfw.a",
        "a.o",
    ]
