# luaubuild/core/graph/compile.py
"""
Compile steps and the module/link-object model around them.

A Compile step aggregates an ordered list of source files (each with its
flag set) into one emitted binary: a static library or an executable. How
sources become objects and objects become the binary is delegated to the
Toolchain port, so the same step works for the native and Emscripten paths.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from luaubuild.core.domain.exceptions import GraphConstructionError, ToolInvocationError
from luaubuild.core.domain.models import TargetConfig
from luaubuild.core.graph.lazy_path import GeneratedPath, LazyPath
from luaubuild.core.graph.run import _run
from luaubuild.core.graph.step import Step, StepKind

if TYPE_CHECKING:
    from luaubuild.core.graph.build import Build
    from luaubuild.core.ports import Toolchain

logger = structlog.get_logger()


class CompileKind(str, Enum):
    LIB = "lib"
    EXE = "exe"
    TEST = "test"


@dataclass(frozen=True)
class SourceFile:
    path: LazyPath
    flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InstalledHeader:
    source: LazyPath
    dest: str


# --- Link objects ---

@dataclass(frozen=True)
class LinkedStep:
    """Another Compile step's emitted binary."""
    step: "Compile"

    @property
    def is_library(self) -> bool:
        return self.step.compile_kind is CompileKind.LIB


@dataclass(frozen=True)
class StaticPath:
    """A prebuilt object/archive/side-module on disk (possibly generated)."""
    path: LazyPath

    is_library = False


@dataclass(frozen=True)
class SystemLibrary:
    name: str

    is_library = False


LinkObject = Union[LinkedStep, StaticPath, SystemLibrary]


def _dedupe_keep_order(items: List[Any]) -> List[Any]:
    seen: set = set()
    out: List[Any] = []
    for s in items:
        if s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


class Module:
    """
    A consumer-facing bundle of include paths, C macros, options and link
    objects. The binding layer is one of these; a Compile step's own
    settings live in its root module.
    """

    def __init__(self, name: str, root_source_file: Optional[LazyPath] = None):
        self.name = name
        self.root_source_file = root_source_file
        self.include_paths: List[LazyPath] = []
        self.c_macros: List[str] = []
        self.link_objects: List[LinkObject] = []
        self.options: Dict[str, Any] = {}
        self.imports: Dict[str, "Module"] = {}

    def add_include_path(self, path: LazyPath) -> None:
        if path not in self.include_paths:
            self.include_paths.append(path)

    def add_c_macro(self, name: str, value: str) -> None:
        self.c_macros.append(f"{name}={value}")

    def add_options(self, options: Dict[str, Any]) -> None:
        self.options.update(options)

    def add_import(self, name: str, module: "Module") -> None:
        self.imports[name] = module

    def add_object_file(self, path: LazyPath) -> None:
        self.link_objects.append(StaticPath(path))

    def link_system_library(self, name: str) -> None:
        self.link_objects.append(SystemLibrary(name))

    def link_library(self, lib: "Compile") -> None:
        if lib.compile_kind is not CompileKind.LIB:
            raise GraphConstructionError(f"'{lib.name}' is not a library and cannot be linked into '{self.name}'.")
        obj = LinkedStep(lib)
        if obj not in self.link_objects:
            self.link_objects.append(obj)
        for p in lib.public_include_paths:
            self.add_include_path(p)

    def walk(self) -> List["Module"]:
        """This module followed by its imports (depth-first, each once)."""
        out: List[Module] = []
        stack = [self]
        while stack:
            m = stack.pop(0)
            if m in out:
                continue
            out.append(m)
            stack.extend(m.imports.values())
        return out


class Compile(Step):
    kind = StepKind.COMPILE

    def __init__(
        self,
        owner: "Build",
        name: str,
        compile_kind: CompileKind,
        target: TargetConfig,
        toolchain: "Toolchain",
        root_source_file: Optional[LazyPath] = None,
    ):
        super().__init__(owner, name)
        self.compile_kind = compile_kind
        self.target = target
        self.toolchain = toolchain
        self.root_module = Module(name, root_source_file)
        self.sources: List[SourceFile] = []
        self.public_include_paths: List[LazyPath] = []
        self.installed_headers: List[InstalledHeader] = []
        self.link_libcpp = False
        self._emitted_bin = self._generated(toolchain.emitted_basename(self))

        if root_source_file is not None:
            self.add_c_source_file(root_source_file)

    @property
    def optimize(self):
        return self.target.optimize

    # --- declaration API ---

    def add_include_path(self, path: LazyPath) -> None:
        self.root_module.add_include_path(path)

    def add_public_include_path(self, path: LazyPath) -> None:
        if path not in self.public_include_paths:
            self.public_include_paths.append(path)

    def add_c_source_file(self, path: LazyPath, flags: Sequence[str] = ()) -> None:
        self.sources.append(SourceFile(path, tuple(f for f in flags if f)))
        self.depend_on_path(path)

    def add_c_source_files(self, root: LazyPath, files: Sequence[str], flags: Sequence[str] = ()) -> None:
        for f in files:
            self.add_c_source_file(root.join(f), flags)

    def install_header(self, source: LazyPath, dest: str) -> None:
        self.installed_headers.append(InstalledHeader(source, dest))

    def link_library(self, lib: "Compile") -> None:
        self.root_module.link_library(lib)
        self.depend_on(lib)

    def add_import(self, name: str, module: Module) -> None:
        """Make `module` visible to this step; its root source is compiled in."""
        self.root_module.add_import(name, module)
        if module.root_source_file is not None:
            self.add_c_source_file(module.root_source_file)

    def link_lib_cpp(self) -> None:
        self.link_libcpp = True

    def get_emitted_bin(self) -> GeneratedPath:
        return self._emitted_bin

    # --- queries used by toolchains and linkers ---

    def effective_include_paths(self) -> List[LazyPath]:
        paths: List[LazyPath] = []
        for m in self.root_module.walk():
            paths.extend(m.include_paths)
        return _dedupe_keep_order(paths)

    def effective_c_macros(self) -> List[str]:
        macros: List[str] = []
        for m in self.root_module.walk():
            macros.extend(m.c_macros)
        return _dedupe_keep_order(macros)

    def effective_link_objects(self) -> List[LinkObject]:
        objs: List[LinkObject] = []
        for m in self.root_module.walk():
            objs.extend(m.link_objects)
        return _dedupe_keep_order(objs)

    def get_compile_dependencies(self) -> List["Compile"]:
        """
        This step followed by the Compile steps it links directly.
        Only one level is inspected; libraries linked by those libraries
        are found by the caller through their own link objects.
        """
        out: List[Compile] = [self]
        for obj in self.effective_link_objects():
            if isinstance(obj, LinkedStep) and obj.step not in out:
                out.append(obj.step)
        return out

    # --- graph hooks ---

    def finalize(self) -> None:
        for obj in self.effective_link_objects():
            if isinstance(obj, LinkedStep):
                self.depend_on(obj.step)
            elif isinstance(obj, StaticPath):
                self.depend_on_path(obj.path)

    def make(self) -> None:
        out = self._emitted_bin.get_path()
        obj_dir = out.parent / "obj"
        obj_dir.mkdir(parents=True, exist_ok=True)

        objects: List[Path] = []
        used: Dict[str, int] = {}
        for src in self.sources:
            stem = src.path.get_path().stem
            n = used.get(stem, 0)
            used[stem] = n + 1
            obj = obj_dir / (f"{stem}.o" if n == 0 else f"{stem}-{n}.o")
            self._exec(self.toolchain.compile_command(self, src, obj))
            objects.append(obj)

        self._exec(self.toolchain.link_command(self, objects, out))
        logger.info("compile_emitted", step=self.name, kind=self.compile_kind.value, output=str(out),
                    units=len(objects))

    def _exec(self, argv: List[str]) -> None:
        tool = Path(argv[0]).name
        try:
            proc = _run(argv)
        except OSError as e:
            raise ToolInvocationError(tool, f"cannot spawn '{argv[0]}': {e.strerror or e}") from e

        if proc.returncode != 0:
            stderr = proc.stderr or ""
            self.owner.write_step_log(self, argv, stderr, proc.stdout or "")
            raise ToolInvocationError(
                tool,
                stderr if stderr.strip() else (proc.stdout or "(no output)"),
                exit_code=proc.returncode,
            )
