from pathlib import Path

import pytest

from kiln.core.config import BuildConfig, BuildType, Platform
from kiln.core.errors import ConfigurationError


def test__BuildConfig__from_env__defaults() -> None:
    config = BuildConfig.from_env({})
    assert config.platform == Platform.DESKTOP
    assert config.build_type == BuildType.RELEASE
    assert config.root == Path("build-desktop-release")
    assert config.obj_dir == Path("build-desktop-release/obj")
    assert config.build_type_flags() == ["-O2"]
    assert not config.verbose


def test__BuildConfig__from_env__reads_variables() -> None:
    config = BuildConfig.from_env(
        {"PLATFORM": "web", "BUILD_TYPE": "Debug", "BUILD_DIR": "out", "VERBOSE": "1", "KILN_JOBS": "3"}
    )
    assert config.is_web
    assert not config.is_release
    assert config.root == Path("out")
    assert config.bin_dir == Path("out/bin")
    assert config.cmake_dir == Path("out/cmake")
    assert config.verbose
    assert config.jobs == 3
    assert config.build_type_flags() == ["-g", "-O0"]


@pytest.mark.parametrize(
    "env",
    [{"PLATFORM": "playstation"}, {"BUILD_TYPE": "fast"}, {"KILN_JOBS": "many"}, {"KILN_JOBS": "0"}],
)
def test__BuildConfig__from_env__rejects_bad_values(env: dict[str, str]) -> None:
    with pytest.raises(ConfigurationError):
        BuildConfig.from_env(env)


def test__BuildConfig__with_overrides__recomputes_default_build_dir() -> None:
    config = BuildConfig().with_overrides(platform=Platform.WEB, build_type=None)
    assert config.root == Path("build-web-release")

    custom = BuildConfig(build_dir=Path("out")).with_overrides(build_type=BuildType.DEBUG)
    assert custom.root == Path("out")
    assert custom.build_type == BuildType.DEBUG
