# tests/conftest.py
import sys
from pathlib import Path
from typing import List

import pytest

from luaubuild.core.domain.models import TargetConfig
from luaubuild.core.graph import Build, CompileKind
from luaubuild.core.ports import Toolchain
from luaubuild.shared.config import Settings

# argv[1] = path to write, argv[2] = content
WRITE_FILE = (
    "import pathlib, sys; p = pathlib.Path(sys.argv[1]); "
    "p.parent.mkdir(parents=True, exist_ok=True); p.write_text(sys.argv[2])"
)


def py_tool(code: str, *args) -> List[str]:
    """argv running `code` with the current interpreter; stands in for external tools."""
    return [sys.executable, "-c", code, *[str(a) for a in args]]


class FakeToolchain(Toolchain):
    """Writes placeholder objects; linked binaries are python scripts runnable via run_prefix()."""

    name = "fake"

    def __init__(self):
        self.compiled: List[Path] = []
        self.linked: List[Path] = []

    def compile_command(self, step, source, obj):
        self.compiled.append(source.path.get_path())
        return py_tool(WRITE_FILE, obj, "obj")

    def link_command(self, step, objects, out):
        self.linked.append(out)
        return py_tool(WRITE_FILE, out, "print('linked')")

    def emitted_basename(self, step):
        if step.compile_kind is CompileKind.LIB:
            return f"lib{step.name}.a"
        return step.name

    def run_prefix(self):
        return [sys.executable]


@pytest.fixture
def project(tmp_path) -> Path:
    """A project root with the binding sources and an upstream Luau tree with headers."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    for name in ("luau.cpp", "lib.cpp", "tests.cpp"):
        (root / "src" / name).write_text("// placeholder\n")

    headers = tmp_path / "luau" / "VM" / "include"
    headers.mkdir(parents=True)
    for name in ("lua.h", "lualib.h", "luaconf.h"):
        (headers / name).write_text(f"/* {name} */\n")

    (tmp_path / "emsdk").mkdir()
    return root


@pytest.fixture
def settings(project, tmp_path) -> Settings:
    return Settings(
        PROJECT_ROOT=str(project),
        LUAU_SOURCE_DIR=str(tmp_path / "luau"),
        EMSDK_DIR=str(tmp_path / "emsdk"),
        INSTALL_PREFIX=str(tmp_path / "out"),
        CACHE_DIR=str(tmp_path / "cache"),
    )


def new_build(settings: Settings, target: TargetConfig = None, options=None) -> Build:
    return Build(
        build_root=settings.project_root,
        install_prefix=settings.install_prefix,
        cache_root=settings.cache_dir,
        target=target or TargetConfig(),
        dependencies={"luau": settings.luau_source_dir, "emsdk": settings.emsdk_dir},
        user_options=options,
    )


@pytest.fixture
def build(settings) -> Build:
    return new_build(settings)


@pytest.fixture
def wasm_build(settings) -> Build:
    return new_build(settings, TargetConfig(triple="wasm32-emscripten"))


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()
