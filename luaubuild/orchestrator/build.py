# luaubuild/orchestrator/build.py
"""
Build graph driver.

Resolves the target once, picks the toolchain once, then wires either the
native library path or the emscripten side-module path into one Build. The
binding module and the `test` entry point are declared on both paths.
Nothing runs unless an entry point is requested.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import structlog

from luaubuild.core.domain.models import Artifact, ArtifactKind, TargetConfig
from luaubuild.core.graph import Build, BuildSummary, Compile, Module, Run, TopLevelStep, make
from luaubuild.core.ports import Toolchain
from luaubuild.orchestrator import config
from luaubuild.orchestrator.emsdk import em_sdk_setup_step
from luaubuild.orchestrator.luau import (
    LUAU_INCLUDE_DIRS,
    LUAU_WASM_NAME,
    build_luau,
    build_luau_emscripten,
)
from luaubuild.shared.config import Settings, get_settings
from luaubuild.shared.container import Container

logger = structlog.get_logger()

BINDING_MODULE = "luaubind"


@dataclass
class BuildOutputs:
    target: TargetConfig
    toolchain: Toolchain
    artifact: Artifact
    binding: Module
    tests: Compile
    test_step: TopLevelStep
    emsdk_setup: Optional[Run] = None


def make_toolchain(target: TargetConfig, settings: Settings) -> Toolchain:
    container = Container()
    container.config.from_dict({
        "platform": target.platform.value,
        "triple": target.triple,
        "cc": config.resolve_tool_bin(settings.CC, "cc", settings.project_root),
        "cxx": config.resolve_tool_bin(settings.CXX, "c++", settings.project_root),
        "ar": config.resolve_tool_bin(settings.AR, "ar", settings.project_root),
        "emsdk_dir": settings.emsdk_dir,
    })
    return container.toolchain()


def create_build(
    settings: Settings,
    *,
    target: Optional[str] = None,
    optimize: Optional[str] = None,
    options: Optional[Dict[str, str]] = None,
    prefix: Optional[str] = None,
    cache_dir: Optional[str] = None,
) -> Build:
    """Raises ConfigurationError before any step exists if the target is invalid."""
    target_config = TargetConfig.resolve(
        target or settings.TARGET,
        optimize or settings.OPTIMIZE,
        settings.LUAU_USE_4_VECTOR,
    )
    return Build(
        build_root=settings.project_root,
        install_prefix=Path(prefix) if prefix else settings.install_prefix,
        cache_root=Path(cache_dir) if cache_dir else settings.cache_dir,
        target=target_config,
        dependencies=config.dependency_roots(settings),
        user_options=options,
    )


def configure(b: Build, settings: Settings, toolchain: Optional[Toolchain] = None) -> BuildOutputs:
    use_4_vector = b.option(
        config.LUAU_USE_4_VECTOR_OPTION,
        config.OPTION_DESCRIPTIONS[config.LUAU_USE_4_VECTOR_OPTION],
        default=b.target.luau_use_4_vector,
    )
    b.check_user_options()
    b.target = b.target.model_copy(update={"luau_use_4_vector": use_4_vector})
    target = b.target

    toolchain = toolchain or make_toolchain(target, settings)
    emsdk = b.dependency("emsdk")
    upstream = b.dependency("luau")

    binding = b.add_module(
        BINDING_MODULE,
        root_source_file=b.path(settings.BINDING_ROOT) if settings.BINDING_ROOT else None,
    )
    binding.add_options({config.LUAU_USE_4_VECTOR_OPTION: use_4_vector})
    binding.add_c_macro("LUA_VECTOR_SIZE", str(target.vector_size))

    extra_units = [b.path(settings.BINDING_SOURCE)]
    emsdk_setup: Optional[Run] = None

    if target.is_emscripten:
        emsdk_setup = em_sdk_setup_step(b, emsdk)
        wasm = build_luau_emscripten(b, target, upstream, use_4_vector, emsdk, extra_units, setup=emsdk_setup)
        b.add_named_lazy_path(LUAU_WASM_NAME, wasm)
        binding.add_object_file(wasm)
        artifact = Artifact(ArtifactKind.WASM_OBJECT, LUAU_WASM_NAME, wasm)
    else:
        lib = build_luau(b, toolchain, target, upstream, use_4_vector, extra_units)
        artifact = Artifact(ArtifactKind.STATIC_LIBRARY, lib.name, lib.get_emitted_bin(), lib)

    for d in LUAU_INCLUDE_DIRS:
        binding.add_include_path(upstream.path(d))

    if artifact.installable:
        b.install_artifact(artifact.compile_step)
        binding.link_library(artifact.compile_step)

    tests = b.add_test("tests", toolchain, b.path(settings.TEST_SOURCE))
    tests.add_import(BINDING_MODULE, binding)
    run_tests = b.add_run_artifact(tests)
    test_step = b.step("test", "Run binding tests")
    test_step.depend_on(run_tests)

    logger.info(
        "build_configured",
        target=target.triple,
        platform=target.platform.value,
        optimize=target.optimize.value,
        luau_use_4_vector=use_4_vector,
        artifact=artifact.kind.value,
        emsdk_setup=emsdk_setup is not None,
    )
    return BuildOutputs(
        target=target,
        toolchain=toolchain,
        artifact=artifact,
        binding=binding,
        tests=tests,
        test_step=test_step,
        emsdk_setup=emsdk_setup,
    )


def log_summary(summary: BuildSummary) -> None:
    logger.info(
        "build_summary",
        succeeded=len(summary.succeeded),
        failed=len(summary.failed),
        skipped=len(summary.skipped),
        duration=f"{summary.duration:.2f}s",
    )
    for name, error in summary.failed:
        logger.error("build_failure", step=name, error=error)
    if summary.skipped:
        logger.warning("build_skipped", steps=summary.skipped)


def build_luau_project(
    steps: Sequence[str] = (),
    *,
    target: Optional[str] = None,
    optimize: Optional[str] = None,
    options: Optional[Dict[str, str]] = None,
    prefix: Optional[str] = None,
    cache_dir: Optional[str] = None,
    clean: bool = False,
    max_workers: Optional[int] = None,
    settings: Optional[Settings] = None,
    toolchain: Optional[Toolchain] = None,
) -> BuildSummary:
    """
    Configure the graph and build the requested entry points.
    With no entry point requested nothing is built and an empty summary is returned.
    """
    settings = settings or get_settings()
    b = create_build(settings, target=target, optimize=optimize, options=options,
                     prefix=prefix, cache_dir=cache_dir)

    if clean:
        config.clean_artifacts(b.cache_root)

    configure(b, settings, toolchain=toolchain)

    if not steps:
        logger.info("nothing_requested", available=[s["name"] for s in b.describe_steps()])
        return BuildSummary()

    requested: List = [b.resolve_entry(name) for name in steps]
    config.ensure_dirs_exist(b.cache_root)

    summary = make(b, requested, max_workers=max_workers or settings.MAX_WORKERS)
    log_summary(summary)
    return summary
