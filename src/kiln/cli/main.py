from __future__ import annotations

import argparse
import builtins
import logging
import os
import pdb
import sys
import textwrap
from functools import partial
from pathlib import Path
from typing import NoReturn

from termcolor import colored

from kiln.cli.option_sets import BuildOptions, GraphOptions
from kiln.common import LoggingOptions
from kiln.core.config import BuildConfig
from kiln.core.errors import BuildError, KilnError
from kiln.core.executor.colored import ColoredDefaultPrintingExecutorObserver
from kiln.core.runner import format_command
from kiln.core.target import Target, TargetKind
from kiln.native.session import EXTERNAL_VERBS, TARGET_VERBS, BuildSession

logger = logging.getLogger(__name__)
print = partial(builtins.print, flush=True)


class BuildScriptError(Exception):
    """
    Raised if an exception occurs while executing the build script.
    """


def _get_argument_parser(prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog,
        formatter_class=lambda prog: argparse.RawDescriptionHelpFormatter(prog, width=120, max_help_position=60),
        description=textwrap.dedent(
            """
            Kiln, an incremental build orchestrator for C and C++ projects.

            Targets are declared in a Python build script and built with clang (desktop) or
            Emscripten (web). Only what is out of date is recompiled.
            """
        ),
    )
    subparsers = parser.add_subparsers(dest="cmd")
    default_verbosity = 1 if os.getenv("VERBOSE", "").lower() in ("1", "true", "yes") else 0

    run = subparsers.add_parser("run", aliases=["r"], description="build, clean or run one or more targets")
    LoggingOptions.add_to_parser(run, default_verbosity)
    BuildOptions.add_to_parser(run)
    GraphOptions.add_to_parser(run)

    ls = subparsers.add_parser("ls", description="list all targets declared by the build script")
    LoggingOptions.add_to_parser(ls, default_verbosity)
    BuildOptions.add_to_parser(ls)

    status = subparsers.add_parser("status", description="show which artifacts of a target are out of date")
    LoggingOptions.add_to_parser(status, default_verbosity)
    BuildOptions.add_to_parser(status)
    status.add_argument("target", help="the target to inspect")

    compile_command = subparsers.add_parser(
        "compile-command",
        description="print the command that compiles a source file with the flags of a target",
    )
    LoggingOptions.add_to_parser(compile_command, default_verbosity)
    BuildOptions.add_to_parser(compile_command)
    compile_command.add_argument("target", help="the target whose flags are used")
    compile_command.add_argument("source", type=Path, help="the source file to compile")

    compile_commands = subparsers.add_parser(
        "compile-commands",
        description="write a compile_commands.json for a target",
    )
    LoggingOptions.add_to_parser(compile_commands, default_verbosity)
    BuildOptions.add_to_parser(compile_commands)
    compile_commands.add_argument("target", help="the target to write the compilation database for")
    compile_commands.add_argument(
        "-o",
        "--output",
        metavar="PATH",
        type=Path,
        help="the file to write [default: compile_commands.json]",
    )

    return parser


def load_session(build_options: BuildOptions, report_up_to_date: bool = False) -> BuildSession:
    """
    Create the session for the configuration given by the environment and the command-line and execute the build
    script in it.
    """

    config = build_options.get_config(BuildConfig.from_env())
    if not build_options.file.is_file():
        raise BuildScriptError(f'no build script found at "{build_options.file}"')

    logger.info(
        "platform: %s, build type: %s, build directory: %s",
        config.platform.value,
        config.build_type.value,
        config.root,
    )
    session = BuildSession(config, observer=ColoredDefaultPrintingExecutorObserver(report_up_to_date))
    try:
        session.load_script(build_options.file)
    except KilnError:
        raise
    except Exception as exc:
        raise BuildScriptError(f'an error occurred while executing the build script "{build_options.file}"') from exc
    return session


def run(session: BuildSession, graph_options: GraphOptions) -> None:
    try:
        session.execute(graph_options.tasks)
    except BuildError as exc:
        print()
        print("error:", exc, file=sys.stderr)
        sys.exit(1)


def ls(session: BuildSession) -> None:
    targets = session.targets()
    if not targets:
        print("no targets")
        sys.exit(1)
    longest_name = max(len(t.name) for t in targets)

    print()
    print(colored("Targets", "blue", attrs=["bold", "underline"]))
    print()

    for target in targets:
        if isinstance(target, Target):
            kind = target.kind.name.lower().replace("_", " ")
            verbs = [v for v in TARGET_VERBS if v != "run" or target.kind == TargetKind.EXECUTABLE]
            details = f"{len(target.sources)} source(s)"
            if target.link_libraries:
                details += ", links " + ", ".join(lib.name for lib in target.link_libraries)
        else:
            kind = "external"
            verbs = list(EXTERNAL_VERBS)
            details = str(target.source_dir)
        print(
            " ",
            colored(target.name.ljust(longest_name), "green"),
            colored(kind.ljust(14), "yellow"),
            colored(" ".join(verbs), "cyan"),
            f"({details})",
        )

    print()


def status(session: BuildSession, target_name: str) -> None:
    states = session.status(target_name)
    outdated = 0
    for path, state in states.items():
        if state.needs_update():
            outdated += 1
        color = "green" if not state.needs_update() else "red" if state.name == "MISSING" else "yellow"
        print(" ", colored(state.name.ljust(7), color), path)
    print()
    print(f"{outdated} of {len(states)} artifact(s) need to be updated")


def on_exception(exc: BaseException) -> int:
    """
    Called when an exception occurrs in #main_internal() to handle common errors and provide better error messages.
    """

    match exc:
        case SystemExit():
            if not isinstance(exc.code, int):
                logger.warning("SystemExit.code is not an integer: %r", exc.code)
                return 1
            return exc.code
        case KilnError():
            logger.error("%s", exc)
            return 1
        case BuildScriptError():
            logger.error(
                "%s. This indicates a mistake in your build script.\n\n",
                exc,
                exc_info=exc.__cause__ or exc.__context__,
            )
            return 2
        case KeyboardInterrupt():
            logger.error("interrupted")
            return 3
        case _:
            logger.error(
                "An unexpected error occurred in the Kiln CLI. This is likely a bug in Kiln.\n\n",
                exc_info=exc,
            )
            return 3


def main_internal(prog: str, argv: list[str] | None, pdb_enabled: bool) -> NoReturn:
    parser = _get_argument_parser(prog)
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if not args.cmd:
        parser.print_usage()
        sys.exit(0)

    if LoggingOptions.available(args):
        LoggingOptions.collect(args).init_logging()

    if pdb_enabled:
        logger.info("note: KILN_PDB=1 is set, an interactive debugging session will be started on exit.")

    build_options = BuildOptions.collect(args)

    if args.cmd in ("run", "r"):
        graph_options = GraphOptions.collect(args)
        run(load_session(build_options, graph_options.report_up_to_date), graph_options)
    elif args.cmd == "ls":
        ls(load_session(build_options))
    elif args.cmd == "status":
        status(load_session(build_options), args.target)
    elif args.cmd == "compile-command":
        print(format_command(load_session(build_options).compile_command(args.target, args.source)))
    elif args.cmd == "compile-commands":
        load_session(build_options).write_compile_commands(args.target, args.output)
    else:
        parser.print_usage()

    sys.exit(0)


def main(prog: str = "kiln", argv: list[str] | None = None, handle_exceptions: bool = True) -> NoReturn:
    pdb_enabled = os.getenv("KILN_PDB") == "1"
    try:
        main_internal(prog, argv, pdb_enabled)
    except BaseException as exc:
        if not handle_exceptions:
            raise
        code = on_exception(exc)
        if pdb_enabled:
            pdb.post_mortem()
        sys.exit(code)


if __name__ == "__main__":
    main()
