# tests/test_cli.py
from unittest.mock import patch

import pytest

from luaubuild.core.domain.exceptions import ConfigurationError
from luaubuild.core.graph import BuildSummary
from luaubuild.orchestrator.__main__ import (
    EXIT_BUILD_FAILED,
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    main,
    parse_options,
)


@pytest.fixture(autouse=True)
def _project_env(monkeypatch, settings):
    monkeypatch.setenv("LUAUBUILD_PROJECT_ROOT", settings.PROJECT_ROOT)
    monkeypatch.setenv("LUAUBUILD_LUAU_SOURCE_DIR", settings.LUAU_SOURCE_DIR)
    monkeypatch.setenv("LUAUBUILD_EMSDK_DIR", settings.EMSDK_DIR)
    monkeypatch.setenv("LUAUBUILD_INSTALL_PREFIX", settings.INSTALL_PREFIX)
    monkeypatch.setenv("LUAUBUILD_CACHE_DIR", settings.CACHE_DIR)
    monkeypatch.delenv("LUAUBUILD_OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    # keep structlog on its defaults; the CLI would bind loggers to the captured stdout
    with patch("luaubuild.orchestrator.__main__.configure_logging"):
        yield


def test_parse_options():
    assert parse_options(["luau_use_4_vector=true", "x=a=b"]) == {"luau_use_4_vector": "true", "x": "a=b"}
    with pytest.raises(ConfigurationError):
        parse_options(["luau_use_4_vector"])
    with pytest.raises(ConfigurationError):
        parse_options(["=true"])


def test_no_entry_point_lists_steps(capsys, settings):
    assert main([]) == EXIT_OK

    out = capsys.readouterr().out
    assert "install" in out
    assert "test" in out
    assert "-Dluau_use_4_vector=[true|false]" in out
    assert not settings.cache_dir.exists()


def test_list_steps_on_wasm_shows_named_output(capsys):
    assert main(["--list-steps", "--target", "wasm32-emscripten"]) == EXIT_OK
    assert "luau.wasm" in capsys.readouterr().out


def test_unsupported_target_exits_with_config_error():
    assert main(["--target", "wasm32-wasi", "test"]) == EXIT_CONFIG_ERROR


def test_bad_option_exits_with_config_error():
    assert main(["-Dluau_use_4_vector=yes", "test"]) == EXIT_CONFIG_ERROR
    assert main(["-Dluau_use_4_vector", "test"]) == EXIT_CONFIG_ERROR
    assert main(["-Dunknown=true", "test"]) == EXIT_CONFIG_ERROR


def test_unknown_entry_point_exits_with_config_error():
    assert main(["bench"]) == EXIT_CONFIG_ERROR


def test_failed_build_exits_non_zero():
    failed = BuildSummary(failed=[("emcc", "emcc failed with exit code 1:\nboom")])
    with patch("luaubuild.orchestrator.__main__.build_luau_project", return_value=failed) as build:
        assert main(["install", "-O", "ReleaseSmall"]) == EXIT_BUILD_FAILED

    assert build.call_args.args[0] == ["install"]
    assert build.call_args.kwargs["optimize"] == "ReleaseSmall"


def test_successful_build_exits_zero():
    with patch("luaubuild.orchestrator.__main__.build_luau_project", return_value=BuildSummary(succeeded=["install"])):
        assert main(["install", "--max-workers", "2", "--clean"]) == EXIT_OK


def test_invalid_vector_toggle_env_exits_with_config_error(monkeypatch, capsys):
    monkeypatch.setenv("LUAUBUILD_LUAU_USE_4_VECTOR", "yes")
    with patch("luaubuild.orchestrator.__main__.build_luau_project") as build_project:
        assert main(["test"]) == EXIT_CONFIG_ERROR
    build_project.assert_not_called()
    assert "LUAU_USE_4_VECTOR" in capsys.readouterr().err
