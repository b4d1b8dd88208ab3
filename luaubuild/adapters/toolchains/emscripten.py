# luaubuild/adapters/toolchains/emscripten.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Sequence

from luaubuild.core.domain.models import OptimizeMode
from luaubuild.core.graph.compile import Compile, CompileKind, SourceFile, StaticPath
from luaubuild.core.graph.lazy_path import Dependency, DependencyPath, path_join
from luaubuild.core.ports import Toolchain
from luaubuild.adapters.toolchains.native import link_object_args


def em_sdk_lazy_path(emsdk: Dependency, sub_paths: Sequence[str]) -> DependencyPath:
    """LazyPath under the emsdk root built from the given path components."""
    return emsdk.path(path_join(*sub_paths))


def emcc_path(emsdk: Dependency) -> Path:
    return em_sdk_lazy_path(emsdk, ("upstream", "emscripten", "emcc")).get_path()


def em_optimize_flags(optimize: OptimizeMode) -> List[str]:
    """Compile-time optimization flag; Debug passes none."""
    if optimize is OptimizeMode.RELEASE_SMALL:
        return ["-Oz"]
    if optimize in (OptimizeMode.RELEASE_FAST, OptimizeMode.RELEASE_SAFE):
        return ["-O3"]
    return []


class EmscriptenToolchain(Toolchain):
    """emcc/emar from an emsdk checkout; executables are JS + wasm run under node."""

    name = "emscripten"

    def __init__(self, emsdk: Dependency):
        self.emsdk = emsdk

    @property
    def emcc(self) -> str:
        return str(emcc_path(self.emsdk))

    @property
    def emar(self) -> str:
        return str(em_sdk_lazy_path(self.emsdk, ("upstream", "emscripten", "emar")).get_path())

    def compile_command(self, step: Compile, source: SourceFile, obj: Path) -> List[str]:
        argv = [self.emcc, *em_optimize_flags(step.optimize)]
        for inc in step.effective_include_paths():
            argv.extend(["-I", str(inc.get_path())])
        argv.extend(f"-D{m}" for m in step.effective_c_macros())
        argv.extend(source.flags)
        argv.extend(["-c", str(source.path.get_path()), "-o", str(obj)])
        return argv

    def link_command(self, step: Compile, objects: Sequence[Path], out: Path) -> List[str]:
        if step.compile_kind is CompileKind.LIB:
            return [self.emar, "rcs", str(out), *[str(o) for o in objects]]

        argv = [self.emcc, *em_optimize_flags(step.optimize), *[str(o) for o in objects], *link_object_args(step)]
        side_modules = [
            obj for obj in step.effective_link_objects()
            if isinstance(obj, StaticPath) and obj.path.get_path().suffix == ".wasm"
        ]
        if side_modules:
            argv.append("-sMAIN_MODULE=1")
        argv.extend(["-o", str(out)])
        return argv

    def emitted_basename(self, step: Compile) -> str:
        if step.compile_kind is CompileKind.LIB:
            return f"lib{step.name}.a"
        return f"{step.name}.js"

    def run_prefix(self) -> List[str]:
        return [shutil.which("node") or "node"]
