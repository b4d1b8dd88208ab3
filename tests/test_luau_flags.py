# tests/test_luau_flags.py
from luaubuild.core.domain.models import TargetConfig
from luaubuild.core.graph import InstallArtifact, make
from luaubuild.orchestrator.luau import (
    LUAU_DEFINES,
    build_luau,
    build_luau_emscripten,
    emscripten_flags,
    native_flags,
)
from luaubuild.orchestrator.sources import LUAU_SOURCE_FILES

from tests.conftest import new_build


def _native_lib(b, toolchain, use_4_vector):
    return build_luau(b, toolchain, b.target, b.dependency("luau"), use_4_vector, [b.path("src", "luau.cpp")])


def test_native_flags_default_has_no_vector_size():
    flags = native_flags(False)
    assert flags == [
        "-DLUA_USE_LONGJMP=1",
        '-DLUA_API=extern"C"',
        '-DLUACODE_API=extern"C"',
        '-DLUACODEGEN_API=extern"C"',
    ]
    assert not any(f.startswith("-DLUA_VECTOR_SIZE") for f in flags)


def test_native_flags_with_toggle():
    assert native_flags(True) == [*LUAU_DEFINES, "-DLUA_VECTOR_SIZE=4"]


def test_native_library_headers_and_include_dirs(build, fake_toolchain):
    upstream = build.dependency("luau")
    lib = _native_lib(build, fake_toolchain, False)

    assert [h.dest for h in lib.installed_headers] == ["lua.h", "lualib.h", "luaconf.h"]
    assert lib.public_include_paths == [upstream.path("VM/include"), upstream.path("Compiler/include")]
    assert lib.link_libcpp

    install = build.install_artifact(lib)
    assert isinstance(install, InstallArtifact)
    assert [h.dest_rel_path for h in install.header_steps] == ["include/lua.h", "include/lualib.h", "include/luaconf.h"]


def test_native_library_units_and_flags(build, fake_toolchain):
    lib = _native_lib(build, fake_toolchain, True)

    assert len(lib.sources) == len(LUAU_SOURCE_FILES) + 1
    assert lib.sources[-1].path == build.path("src", "luau.cpp")
    assert all(s.flags[-1] == "-DLUA_VECTOR_SIZE=4" for s in lib.sources)


def test_toggle_never_changes_native_units(settings, fake_toolchain):
    off = _native_lib(new_build(settings), fake_toolchain, False)
    on = _native_lib(new_build(settings), fake_toolchain, True)

    assert [s.path for s in off.sources] == [s.path for s in on.sources]
    assert set(on.sources[0].flags) - set(off.sources[0].flags) == {"-DLUA_VECTOR_SIZE=4"}
    assert set(off.sources[0].flags) - set(on.sources[0].flags) == set()


def test_wasm_flags_always_carry_vector_size(settings):
    upstream = new_build(settings).dependency("luau")
    flags = emscripten_flags(upstream, False)

    assert flags[:7] == ["-s", "SIDE_MODULE=1", *LUAU_DEFINES, "-DLUA_VECTOR_SIZE=3"]
    assert flags[7:] == [
        "-I", str(upstream.root / "Common" / "include"),
        "-I", str(upstream.root / "Compiler" / "include"),
        "-I", str(upstream.root / "Ast" / "include"),
        "-I", str(upstream.root / "VM" / "include"),
    ]
    assert emscripten_flags(upstream, True)[6] == "-DLUA_VECTOR_SIZE=4"


def _wasm_argv(settings, use_4_vector):
    b = new_build(settings, TargetConfig(triple="wasm32-emscripten"))
    wasm = build_luau_emscripten(b, b.target, b.dependency("luau"), use_4_vector, b.dependency("emsdk"),
                                 [b.path("src", "luau.cpp")])
    b.finalize()
    return wasm, wasm.producer().resolved_argv()


def test_wasm_compile_step(settings):
    wasm, argv = _wasm_argv(settings, False)

    units = [a for a in argv if a.endswith(".cpp")]
    assert len(units) == len(LUAU_SOURCE_FILES) + 1
    assert units[-1].endswith("luau.cpp")
    assert argv[-2:] == ["-o", str(wasm.get_path())]
    assert wasm.get_path().name == "luau.wasm"
    assert "-DLUA_VECTOR_SIZE=3" in argv


def test_toggle_changes_exactly_one_wasm_macro(settings):
    _, off = _wasm_argv(settings, False)
    _, on = _wasm_argv(settings, True)

    assert [a for a in off if a.endswith(".cpp")] == [a for a in on if a.endswith(".cpp")]
    changed = [(a, b) for a, b in zip(off, on) if a != b]
    assert ("-DLUA_VECTOR_SIZE=3", "-DLUA_VECTOR_SIZE=4") in changed
    assert all(a.endswith(".wasm") or a.startswith("-DLUA_VECTOR_SIZE") for pair in changed for a in pair)


def test_native_library_builds_with_toolchain(build, fake_toolchain):
    lib = _native_lib(build, fake_toolchain, False)
    summary = make(build, [lib], max_workers=2)

    assert summary.ok
    assert lib.get_emitted_bin().get_path().name == "libluau.a"
    assert lib.get_emitted_bin().get_path().exists()
    assert len(fake_toolchain.compiled) == len(LUAU_SOURCE_FILES) + 1
