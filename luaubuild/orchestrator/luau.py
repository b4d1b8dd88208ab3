# luaubuild/orchestrator/luau.py
"""
Luau compile-unit aggregation.

Native targets get a static library `luau` (headers and public include
directories attached). The emscripten target gets one `emcc` invocation that
builds every unit into a `luau.wasm` side module.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import structlog

from luaubuild.core.domain.models import TargetConfig
from luaubuild.core.graph.build import Build
from luaubuild.core.graph.compile import Compile
from luaubuild.core.graph.lazy_path import Dependency, LazyPath
from luaubuild.core.graph.run import Run
from luaubuild.core.ports import Toolchain
from luaubuild.orchestrator.emsdk import em_compile_step
from luaubuild.orchestrator.sources import LUAU_SOURCE_FILES

logger = structlog.get_logger()

LUAU_LIBRARY_NAME = "luau"
LUAU_WASM_NAME = "luau.wasm"

# longjmp error propagation plus C linkage for the three exported APIs
LUAU_DEFINES = (
    "-DLUA_USE_LONGJMP=1",
    '-DLUA_API=extern"C"',
    '-DLUACODE_API=extern"C"',
    '-DLUACODEGEN_API=extern"C"',
)

LUAU_INCLUDE_DIRS = (
    "Common/include",
    "Compiler/include",
    "Ast/include",
    "VM/include",
)

LUAU_PUBLIC_INCLUDE_DIRS = (
    "VM/include",
    "Compiler/include",
)

# (path under the upstream tree, installed name)
LUAU_PUBLIC_HEADERS = (
    ("VM/include/lua.h", "lua.h"),
    ("VM/include/lualib.h", "lualib.h"),
    ("VM/include/luaconf.h", "luaconf.h"),
)


def vector_size_define(use_4_vector: bool) -> str:
    return "-DLUA_VECTOR_SIZE=4" if use_4_vector else "-DLUA_VECTOR_SIZE=3"


def native_flags(use_4_vector: bool) -> List[str]:
    """Native compile flags. The vector size is only passed when it differs from the default."""
    flags = list(LUAU_DEFINES)
    if use_4_vector:
        flags.append(vector_size_define(True))
    return flags


def emscripten_flags(upstream: Dependency, use_4_vector: bool) -> List[str]:
    """
    emcc flags for the side-module build. Unlike the native path the vector
    size is always explicit, and include roots are passed as -I flags.
    """
    flags = ["-s", "SIDE_MODULE=1", *LUAU_DEFINES, vector_size_define(use_4_vector)]
    for d in LUAU_INCLUDE_DIRS:
        flags.extend(["-I", str(upstream.path(d).get_path())])
    return flags


def luau_sources(upstream: Dependency) -> List[LazyPath]:
    return [upstream.path(f) for f in LUAU_SOURCE_FILES]


def build_luau(
    b: Build,
    toolchain: Toolchain,
    target: TargetConfig,
    upstream: Dependency,
    use_4_vector: bool,
    extra_units: Sequence[LazyPath] = (),
) -> Compile:
    lib = b.add_static_library(LUAU_LIBRARY_NAME, toolchain, target)

    for d in LUAU_INCLUDE_DIRS:
        lib.add_include_path(upstream.path(d))
    for d in LUAU_PUBLIC_INCLUDE_DIRS:
        lib.add_public_include_path(upstream.path(d))

    flags = native_flags(use_4_vector)
    lib.add_c_source_files(upstream.path(), LUAU_SOURCE_FILES, flags)
    for unit in extra_units:
        lib.add_c_source_file(unit, flags)

    lib.link_lib_cpp()

    for src, dest in LUAU_PUBLIC_HEADERS:
        lib.install_header(upstream.path(src), dest)

    logger.debug("luau_native_configured", units=len(lib.sources), vector_size=4 if use_4_vector else 3)
    return lib


def build_luau_emscripten(
    b: Build,
    target: TargetConfig,
    upstream: Dependency,
    use_4_vector: bool,
    emsdk: Dependency,
    extra_units: Sequence[LazyPath] = (),
    setup: Optional[Run] = None,
) -> LazyPath:
    files = luau_sources(upstream) + list(extra_units)
    wasm = em_compile_step(
        b,
        LUAU_WASM_NAME,
        files,
        target.optimize,
        emsdk,
        emscripten_flags(upstream, use_4_vector),
    )

    if setup is not None:
        wasm.producer().depend_on(setup)
        b.get_install_step().depend_on(setup)

    logger.debug("luau_wasm_configured", units=len(files), vector_size=4 if use_4_vector else 3,
                 bootstrap=setup is not None)
    return wasm
