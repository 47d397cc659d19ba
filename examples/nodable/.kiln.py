"""
Build script for a Nodable-like application: header-only and vendored libraries compiled as object collections,
two static libraries and the application executable. Run with `kiln run nodable` or `kiln run nodable:run`.
"""

from kiln.core.target import TargetKind, split_flags
from kiln.native.session import BuildSession

session = BuildSession.current()
config = session.config


def base(name: str, sources: list[str]) -> dict:
    """Flags shared by every target of the project."""

    return dict(
        sources=sources,
        includes=[
            "src",
            "src/ndbl",
            "src/tools",
            "libs",
            "libs/imgui",
            "libs/glm",
            "libs/gl3w",
            "libs/SDL/include",
            str(config.include_dir),
            str(config.include_dir / "freetype2"),
        ],
        defines=[
            'IMGUI_USER_CONFIG="tools/gui/ImGuiExConfig.h"',
            'NDBL_APP_ASSETS_DIR="assets"',
            f'NDBL_APP_NAME="{name}"',
            'NDBL_BUILD_REF="local"',
        ],
        compiler_flags=[] if config.is_release else ["-Wfatal-errors"],
        cxx_flags=["--std=c++20", "-fno-char8_t"],
    )


freetype = session.external("freetype", "libs/freetype", install_artifact="lib/libfreetype.a")
sdl = session.external("sdl", "libs/sdl", install_artifact="lib/libSDL2.a")
nfd = session.external("nfd", "libs/nativefiledialog-extended", install_artifact="lib/libnfd.a")
for external in ("googletest", "cpptrace"):
    session.external(external, f"libs/{external}")

gl3w = session.target("gl3w", TargetKind.OBJECTS, **base("gl3w", ["libs/gl3w/GL/gl3w.c"]))
lodepng = session.target("lodepng", TargetKind.OBJECTS, **base("lodepng", ["libs/lodepng/lodepng.cpp"]))
imgui = session.target(
    "imgui",
    TargetKind.OBJECTS,
    **base(
        "imgui",
        [
            "libs/imgui/imgui.cpp",
            "libs/imgui/imgui_demo.cpp",
            "libs/imgui/imgui_draw.cpp",
            "libs/imgui/imgui_tables.cpp",
            "libs/imgui/imgui_widgets.cpp",
            "libs/imgui/backends/imgui_impl_sdl.cpp",
            "libs/imgui/backends/imgui_impl_opengl3.cpp",
        ],
    ),
)

core = session.target(
    "ndbl_core",
    TargetKind.STATIC_LIBRARY,
    **base(
        "ndbl_core",
        [
            "src/ndbl/core/Graph.cpp",
            "src/ndbl/core/Interpreter.cpp",
            "src/ndbl/core/Node.cpp",
            "src/ndbl/core/Token.cpp",
        ],
    ),
)
gui = session.target(
    "ndbl_gui",
    TargetKind.STATIC_LIBRARY,
    **base("ndbl_gui", ["src/ndbl/gui/GraphView.cpp", "src/ndbl/gui/NodeView.cpp"]),
)
gui.link_libraries += [core, imgui]

app = session.target("nodable", TargetKind.EXECUTABLE, **base("nodable", ["src/ndbl/app/main.cpp"]))
app.link_libraries += [gui, gl3w, lodepng]
app.add_assets("assets/fonts/JetBrainsMono-Regular.ttf", "assets/nodable.cfg:nodable.cfg")
app.linker_flags += [f"-L{config.lib_dir}", "-lGL", *split_flags("-lfreetype -lpng -lz -lSDL2 -lSDL2main -lnfd")]
if config.is_web:
    app.linker_flags += ["-sUSE_SDL=2", "-sUSE_FREETYPE=1", "--preload-file", "assets"]
else:
    # Emscripten provides ports of these on the web.
    imgui.dependencies += [sdl]
    gui.dependencies += [freetype]
    app.dependencies += [nfd]
