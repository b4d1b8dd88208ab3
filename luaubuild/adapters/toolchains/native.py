# luaubuild/adapters/toolchains/native.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Sequence

from luaubuild.core.domain.models import NATIVE_TRIPLE, OptimizeMode
from luaubuild.core.graph.compile import Compile, CompileKind, LinkedStep, SourceFile, StaticPath, SystemLibrary
from luaubuild.core.ports import Toolchain

_CXX_SUFFIXES = (".cpp", ".cc", ".cxx")

OPTIMIZE_FLAGS = {
    OptimizeMode.DEBUG: ["-O0", "-g"],
    OptimizeMode.RELEASE_SAFE: ["-O2"],
    OptimizeMode.RELEASE_FAST: ["-O3"],
    OptimizeMode.RELEASE_SMALL: ["-Os"],
}


def link_object_args(step: Compile) -> List[str]:
    """Linker inputs for everything the step links, in declaration order."""
    args: List[str] = []
    for obj in step.effective_link_objects():
        if isinstance(obj, LinkedStep):
            args.append(str(obj.step.get_emitted_bin().get_path()))
        elif isinstance(obj, StaticPath):
            args.append(str(obj.path.get_path()))
        elif isinstance(obj, SystemLibrary):
            args.append(f"-l{obj.name}")
    return args


def needs_libcpp(step: Compile) -> bool:
    """C++ runtime is required by the step itself, a C++ source, or any library it links."""
    if step.link_libcpp or any(s.path.get_path().suffix in _CXX_SUFFIXES for s in step.sources):
        return True
    return any(
        isinstance(obj, LinkedStep) and obj.step.link_libcpp
        for obj in step.effective_link_objects()
    )


def _is_clang(tool: str) -> bool:
    return "clang" in Path(tool).name


# Default tool names and their GNU cross-prefixed equivalents.
_GNU_CROSS_TOOLS = {"cc": "gcc", "c++": "g++", "ar": "ar"}


class NativeToolchain(Toolchain):
    """
    Host C/C++ compiler + archiver (cc / c++ / ar by default).

    For an explicit triple, clang is driven with --target=<triple>. Any other
    compiler is treated as GCC-style: default tool names become
    <triple>-gcc / <triple>-g++ / <triple>-ar and no --target flag is passed.
    """

    name = "native"

    def __init__(self, cxx: str = "c++", ar: str = "ar", target_triple: str = NATIVE_TRIPLE, cc: str = "cc"):
        self.target_triple = target_triple or NATIVE_TRIPLE
        self.cc = cc or "cc"
        self.cxx = cxx or "c++"
        self.ar = ar or "ar"

        if self.is_cross and not self.uses_clang:
            self.cc = self._cross_tool(self.cc)
            self.cxx = self._cross_tool(self.cxx)
            self.ar = self._cross_tool(self.ar)

    @property
    def is_cross(self) -> bool:
        return self.target_triple != NATIVE_TRIPLE

    @property
    def uses_clang(self) -> bool:
        return _is_clang(self.cc) or _is_clang(self.cxx)

    def _cross_tool(self, tool: str) -> str:
        gnu = _GNU_CROSS_TOOLS.get(tool)
        return f"{self.target_triple}-{gnu}" if gnu else tool

    def _target_args(self) -> List[str]:
        if self.is_cross and self.uses_clang:
            return [f"--target={self.target_triple}"]
        return []

    def compile_command(self, step: Compile, source: SourceFile, obj: Path) -> List[str]:
        src = source.path.get_path()
        is_cxx = src.suffix in _CXX_SUFFIXES
        argv = [self.cxx if is_cxx else self.cc, *self._target_args(), *OPTIMIZE_FLAGS[step.optimize]]
        if is_cxx:
            argv.append("-std=c++17")
        for inc in step.effective_include_paths():
            argv.extend(["-I", str(inc.get_path())])
        argv.extend(f"-D{m}" for m in step.effective_c_macros())
        argv.extend(source.flags)
        argv.extend(["-c", str(src), "-o", str(obj)])
        return argv

    def link_command(self, step: Compile, objects: Sequence[Path], out: Path) -> List[str]:
        if step.compile_kind is CompileKind.LIB:
            return [self.ar, "rcs", str(out), *[str(o) for o in objects]]
        return [
            self.cxx if needs_libcpp(step) else self.cc,
            *self._target_args(),
            *[str(o) for o in objects],
            *link_object_args(step),
            "-o",
            str(out),
        ]

    def emitted_basename(self, step: Compile) -> str:
        if step.compile_kind is CompileKind.LIB:
            return f"lib{step.name}.a"
        return f"{step.name}.exe" if os.name == "nt" else step.name

    def run_prefix(self) -> List[str]:
        return []
