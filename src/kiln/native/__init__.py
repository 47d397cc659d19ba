from kiln.native.assets import copy_asset
from kiln.native.cmake import CMakeBuild, ExternalState, NoEscalation, PrivilegeEscalation, SudoEscalation
from kiln.native.compile_commands import get_compile_commands, write_compile_commands
from kiln.native.session import BuildSession
from kiln.native.tasks import ArchiveTask, BuildContext, CleanTask, CompileTask, CopyAssetTask, LinkTask, RunTask
from kiln.native.toolchain import Toolchain

__all__ = [
    "ArchiveTask",
    "BuildContext",
    "BuildSession",
    "CMakeBuild",
    "CleanTask",
    "CompileTask",
    "CopyAssetTask",
    "ExternalState",
    "LinkTask",
    "NoEscalation",
    "PrivilegeEscalation",
    "RunTask",
    "SudoEscalation",
    "Toolchain",
    "copy_asset",
    "get_compile_commands",
    "write_compile_commands",
]
