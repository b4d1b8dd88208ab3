# tests/test_build_graph.py
import os
import stat

import pytest

from luaubuild.core.domain.exceptions import (
    ConfigurationError,
    GraphConstructionError,
    UnknownEntryPointError,
)
from luaubuild.core.graph import StepKind

from tests.conftest import WRITE_FILE, new_build, py_tool


def test_install_entry_point_exists_and_is_empty(build):
    install = build.get_install_step()
    assert install.kind is StepKind.TOP_LEVEL
    assert install.dependencies == []
    assert build.resolve_entry("install") is install


def test_duplicate_entry_point_is_rejected(build):
    build.step("test", "Run tests")
    with pytest.raises(GraphConstructionError):
        build.step("test", "again")


def test_self_dependency_is_rejected(build):
    s = build.add_system_command(py_tool("pass"))
    with pytest.raises(GraphConstructionError):
        s.depend_on(s)


def test_depend_on_is_idempotent(build):
    a = build.add_system_command(py_tool("pass"))
    b = build.add_system_command(py_tool("pass"))
    b.depend_on(a)
    b.depend_on(a)
    assert b.dependencies == [a]


def test_cycle_is_rejected_at_finalize(build):
    a = build.add_system_command(py_tool("pass"))
    a.set_name("a")
    b = build.add_system_command(py_tool("pass"))
    b.set_name("b")
    a.depend_on(b)
    b.depend_on(a)

    with pytest.raises(GraphConstructionError, match="Dependency loop detected"):
        build.finalize()


def test_foreign_step_is_rejected(settings, build):
    other = new_build(settings)
    foreign = other.add_system_command(py_tool("pass"))
    mine = build.add_system_command(py_tool("pass"))
    mine.depend_on(foreign)

    with pytest.raises(GraphConstructionError, match="another build"):
        build.finalize()


def test_no_steps_after_finalize(build):
    build.finalize()
    with pytest.raises(GraphConstructionError):
        build.add_system_command(py_tool("pass"))


def test_step_uids_are_unique(build):
    a = build.add_system_command(py_tool("pass"))
    b = build.add_system_command(py_tool("pass"))
    assert a.name == b.name
    assert a.uid != b.uid


def test_unknown_entry_point_lists_available(build):
    build.step("test", "Run tests")
    with pytest.raises(UnknownEntryPointError) as exc:
        build.resolve_entry("bench")
    assert "install" in exc.value.message
    assert "test" in exc.value.message


def test_named_lazy_path_resolves_to_producer(build):
    emcc = build.add_system_command(py_tool(WRITE_FILE))
    out = emcc.add_output_file_arg("luau.wasm")
    build.add_named_lazy_path("luau.wasm", out)

    assert build.resolve_entry("luau.wasm") is emcc
    assert {"name": "luau.wasm", "description": "Named output (builds its producer)"} in build.describe_steps()


def test_unknown_dependency_is_a_configuration_error(build):
    with pytest.raises(ConfigurationError):
        build.dependency("zlib")


def test_bool_option(settings):
    b = new_build(settings, options={"luau_use_4_vector": "true"})
    assert b.option("luau_use_4_vector", "4-vectors") is True
    assert b.option("other", "undeclared on the command line", default=False) is False
    b.check_user_options()


def test_bool_option_rejects_other_values(settings):
    b = new_build(settings, options={"luau_use_4_vector": "yes"})
    with pytest.raises(ConfigurationError, match="expects 'true' or 'false'"):
        b.option("luau_use_4_vector", "4-vectors")


def test_undeclared_user_option_is_rejected(settings):
    b = new_build(settings, options={"luau_use_8_vector": "true"})
    b.option("luau_use_4_vector", "4-vectors")
    with pytest.raises(ConfigurationError, match="luau_use_8_vector"):
        b.check_user_options()


def test_find_program(build, tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    tool = bin_dir / "emrun"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(tool.stat().st_mode | stat.S_IEXEC)

    assert build.find_program(["emrun"], [str(bin_dir)]) == str(tool)
    assert build.find_program(["definitely-not-a-tool-1234"], [str(bin_dir)]) is None


def test_write_step_log(build):
    s = build.add_system_command(py_tool("pass"))
    log = build.write_step_log(s, ["cc", "-c", "x.c"], "error: boom\n", "")
    assert log == build.log_dir / f"{s.uid}.log"
    text = log.read_text(encoding="utf-8")
    assert text.startswith("cc -c x.c")
    assert "error: boom" in text
    assert os.path.isdir(build.log_dir)


def test_absolute_path_is_kept_as_is(build, tmp_path):
    outside = tmp_path / "elsewhere" / "luau.cpp"
    assert build.path(str(outside)).get_path() == outside
    assert build.path(str(tmp_path), "elsewhere/luau.cpp").get_path() == outside
    assert build.path("src/luau.cpp").get_path() == build.build_root / "src" / "luau.cpp"
