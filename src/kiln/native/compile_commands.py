""" Writes a JSON compilation database (`compile_commands.json`) for one target so that editors and language servers
see the same flags as the build. This has no effect on the build graph. """

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from kiln.core.config import BuildConfig
from kiln.core.paths import Layout
from kiln.core.target import Target
from kiln.native.toolchain import Toolchain

COMPILE_COMMANDS_FILENAME = "compile_commands.json"


def get_compile_commands(
    target: Target,
    config: BuildConfig,
    layout: Layout,
    toolchain: Toolchain,
    directory: Path | None = None,
) -> list[dict[str, Any]]:
    directory = (directory or Path.cwd()).absolute()
    entries = []
    for source in target.sources:
        obj = layout.object_path(target, source)
        command = toolchain.compile_command(config, target, source, obj, layout.dependency_file_path(target, source))
        entries.append(
            {
                "directory": str(directory),
                "file": str(source),
                "arguments": command,
                "output": str(obj),
            }
        )
    return entries


def write_compile_commands(entries: list[dict[str, Any]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries, indent=2) + "\n")
