# luaubuild/orchestrator/emsdk.py
"""
Emscripten SDK helpers: one-time bootstrap, compile, link + install, emrun.

The SDK is only needed on the emscripten target. Its bootstrap state is the
existence of `<emsdk>/.emscripten`, which the emsdk installer itself creates.
The marker is re-checked on every call and never written here.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from luaubuild.adapters.toolchains.emscripten import em_optimize_flags, em_sdk_lazy_path, emcc_path
from luaubuild.core.domain.models import OptimizeMode, TargetConfig
from luaubuild.core.graph.build import Build
from luaubuild.core.graph.compile import Compile, LinkedStep
from luaubuild.core.graph.install import InstallDir
from luaubuild.core.graph.lazy_path import Dependency, GeneratedPath, LazyPath
from luaubuild.core.graph.run import Run

logger = structlog.get_logger()

IS_WINDOWS = sys.platform == "win32"
EMSDK_MARKER = ".emscripten"


def _marker_exists(path: Path) -> bool:
    """Unreadable counts as absent: the setup step runs again."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("emsdk_marker_unreadable", path=str(path), error=str(e))
        return False
    return True


def _create_emsdk_step(b: Build, emsdk: Dependency) -> Run:
    if IS_WINDOWS:
        return b.add_system_command([str(em_sdk_lazy_path(emsdk, ["emsdk.bat"]).get_path())])
    step = b.add_system_command(["bash"])
    step.add_arg(str(em_sdk_lazy_path(emsdk, ["emsdk"]).get_path()))
    return step


def em_sdk_setup_step(b: Build, emsdk: Dependency) -> Optional[Run]:
    """
    Returns the 'activate latest' step when the SDK still needs installing
    (it depends on 'install latest'), or None when it is already set up.
    """
    marker = em_sdk_lazy_path(emsdk, [EMSDK_MARKER]).get_path()
    if _marker_exists(marker):
        logger.debug("emsdk_ready", marker=str(marker))
        return None

    logger.info("emsdk_setup_required", emsdk=str(emsdk.root))
    emsdk_install = _create_emsdk_step(b, emsdk)
    emsdk_install.add_args(["install", "latest"])
    emsdk_install.set_name("emsdk install latest")

    emsdk_activate = _create_emsdk_step(b, emsdk)
    emsdk_activate.add_args(["activate", "latest"])
    emsdk_activate.set_name("emsdk activate latest")
    emsdk_activate.depend_on(emsdk_install)
    return emsdk_activate


def em_compile_step(
    b: Build,
    name: str,
    files: Sequence[LazyPath],
    optimize: OptimizeMode,
    emsdk: Dependency,
    extra_flags: Sequence[str],
) -> GeneratedPath:
    emcc = b.add_system_command([str(emcc_path(emsdk))])
    emcc.set_name("emcc")
    emcc.add_args(em_optimize_flags(optimize))
    for f in files:
        emcc.add_file_arg(f)
    emcc.add_args(extra_flags)
    emcc.add_arg("-o")
    return emcc.add_output_file_arg(name)


@dataclass
class EmLinkOptions:
    target: TargetConfig
    optimize: OptimizeMode
    lib_main: Compile
    emsdk: Dependency
    release_use_closure: bool = True
    release_use_lto: bool = True
    use_emmalloc: bool = False
    use_filesystem: bool = True
    shell_file_path: Optional[LazyPath] = None
    extra_args: List[str] = field(default_factory=list)


def _link_libraries(lib_main: Compile) -> List[Compile]:
    """
    Library-kind link objects of lib_main's compile dependencies, each once.
    Only one level is walked; non-library link objects are skipped.
    """
    found: List[Compile] = []
    for item in lib_main.get_compile_dependencies():
        for link_object in item.effective_link_objects():
            if not isinstance(link_object, LinkedStep) or not link_object.is_library:
                continue
            if link_object.step is lib_main or link_object.step in found:
                continue
            found.append(link_object.step)
    return found


def em_link_step(b: Build, options: EmLinkOptions) -> InstallDir:
    """
    Link lib_main and its libraries into <name>.html/.wasm/.js with emcc and
    install the whole output directory to <prefix>/web as part of 'install'.
    """
    emcc = b.add_system_command([str(emcc_path(options.emsdk))])
    emcc.set_name("emcc")
    if options.optimize is OptimizeMode.DEBUG:
        emcc.add_args(["-Og", "-sSAFE_HEAP=1", "-sSTACK_OVERFLOW_CHECK=1"])
    else:
        emcc.add_arg("-sASSERTIONS=0")
        if options.optimize is OptimizeMode.RELEASE_SMALL:
            emcc.add_arg("-Oz")
        else:
            emcc.add_arg("-O3")
        if options.release_use_lto:
            emcc.add_arg("-flto")
        if options.release_use_closure:
            emcc.add_args(["--closure", "1"])
    if not options.use_filesystem:
        emcc.add_arg("-sNO_FILESYSTEM=1")
    if options.use_emmalloc:
        emcc.add_arg("-sMALLOC='emmalloc'")
    if options.shell_file_path is not None:
        emcc.add_prefixed_file_arg("--shell-file=", options.shell_file_path)
    emcc.add_args(options.extra_args)

    emcc.add_artifact_arg(options.lib_main)
    for lib in _link_libraries(options.lib_main):
        emcc.add_artifact_arg(lib)
    emcc.add_arg("-o")
    out_file = emcc.add_output_file_arg(f"{options.lib_main.name}.html")

    # emcc writes .html, .wasm and .js side by side
    install = b.add_install_directory(out_file.dirname(), "web", base_name=options.lib_main.name)
    install.depend_on(emcc)

    b.get_install_step().depend_on(install)
    return install


@dataclass
class EmRunOptions:
    name: str
    emsdk: Dependency


def em_run_step(b: Build, options: EmRunOptions) -> Run:
    """emrun on <prefix>/web/<name>.html. The page is not checked for existence here."""
    emrun_path = b.find_program(["emrun"])
    if emrun_path is None:
        emrun_path = str(em_sdk_lazy_path(options.emsdk, ["upstream", "emscripten", "emrun"]).get_path())
    return b.add_system_command([emrun_path, str(b.install_prefix / "web" / f"{options.name}.html")])
