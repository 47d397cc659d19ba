from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING

from kiln.core.config import BuildConfig, BuildType, Platform

if TYPE_CHECKING:
    import argparse

BUILD_SCRIPT = Path(".kiln.py")


@dataclasses.dataclass(frozen=True)
class BuildOptions:
    file: Path
    platform: Platform | None
    build_type: BuildType | None
    build_dir: Path | None
    jobs: int | None

    @staticmethod
    def add_to_parser(parser: argparse.ArgumentParser) -> None:
        group = parser.add_argument_group("build options")
        group.add_argument(
            "-f",
            "--file",
            metavar="PATH",
            type=Path,
            default=BUILD_SCRIPT,
            help="the build script that declares the targets [default: %(default)s]",
        )
        group.add_argument(
            "--platform",
            choices=[x.value for x in Platform],
            help="the platform to build for [default: $PLATFORM or desktop]",
        )
        group.add_argument(
            "--build-type",
            choices=[x.value for x in BuildType],
            help="the build type [default: $BUILD_TYPE or release]",
        )
        group.add_argument(
            "-b",
            "--build-dir",
            metavar="PATH",
            type=Path,
            help="the build directory to write to [default: $BUILD_DIR or build-<platform>-<build type>]",
        )
        group.add_argument(
            "-j",
            "--jobs",
            metavar="N",
            type=int,
            help="the number of tasks to execute in parallel [default: $KILN_JOBS or the number of CPUs]",
        )

    @classmethod
    def collect(cls, args: argparse.Namespace) -> BuildOptions:
        return cls(
            file=args.file,
            platform=Platform(args.platform) if args.platform else None,
            build_type=BuildType(args.build_type) if args.build_type else None,
            build_dir=args.build_dir,
            jobs=args.jobs,
        )

    def get_config(self, base: BuildConfig) -> BuildConfig:
        """Apply the options that were specified on the command-line to *base*."""

        return base.with_overrides(
            platform=self.platform,
            build_type=self.build_type,
            build_dir=self.build_dir,
            jobs=self.jobs,
        )


@dataclasses.dataclass(frozen=True)
class GraphOptions:
    tasks: list[str]
    report_up_to_date: bool

    @staticmethod
    def add_to_parser(parser: argparse.ArgumentParser) -> None:
        group = parser.add_argument_group("graph options")
        group.add_argument(
            "--report-up-to-date",
            action="store_true",
            help="also report tasks whose outputs were already up to date",
        )
        group.add_argument(
            "tasks",
            metavar="task",
            nargs="+",
            help="one or more tasks in the form <target> or <target>:<verb>. the verb defaults to `build`.",
        )

    @classmethod
    def collect(cls, args: argparse.Namespace) -> GraphOptions:
        return cls(tasks=args.tasks, report_up_to_date=args.report_up_to_date)
