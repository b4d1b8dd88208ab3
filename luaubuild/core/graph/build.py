# luaubuild/core/graph/build.py
"""
The Build owns every Step of one invocation.

It is the construction surface the driver scripts against (paths,
dependencies, options, step factories) and it finalizes the graph: runs the
per-step finalize hooks, rejects foreign steps and cycles, and assigns the
concrete location of every generated file under the cache directory.
"""
from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import structlog

from luaubuild.core.domain.exceptions import (
    ConfigurationError,
    GraphConstructionError,
    UnknownEntryPointError,
)
from luaubuild.core.domain.models import TargetConfig, parse_bool_option
from luaubuild.core.graph.compile import Compile, CompileKind, Module
from luaubuild.core.graph.install import InstallArtifact, InstallDir
from luaubuild.core.graph.lazy_path import Dependency, LazyPath, LiteralPath
from luaubuild.core.graph.run import Run
from luaubuild.core.graph.step import Step, TopLevelStep
from luaubuild.core.ports import Toolchain

logger = structlog.get_logger()


def _slug(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_") or "step"


class Build:
    def __init__(
        self,
        build_root: Path,
        install_prefix: Path,
        cache_root: Path,
        target: TargetConfig,
        dependencies: Optional[Dict[str, Path]] = None,
        user_options: Optional[Dict[str, str]] = None,
    ):
        self.build_root = Path(build_root).resolve()
        self.install_prefix = Path(install_prefix).resolve()
        self.cache_root = Path(cache_root).resolve()
        self.target = target
        self.dependency_roots: Dict[str, Path] = {k: Path(v) for k, v in (dependencies or {}).items()}
        self.user_options: Dict[str, str] = dict(user_options or {})

        self.steps: List[Step] = []
        self.top_level_steps: Dict[str, TopLevelStep] = {}
        self.named_lazy_paths: Dict[str, LazyPath] = {}
        self.modules: Dict[str, Module] = {}
        self.declared_options: Dict[str, str] = {}
        self.finalized = False

        # Opt-in: 'install' exists but nothing runs unless it is requested.
        self.install_step = self.step("install", "Copy build artifacts to the install prefix")

    # --- registration ---

    def register_step(self, step: Step) -> str:
        if self.finalized:
            raise GraphConstructionError(f"Cannot add step '{step.name}' after the graph was finalized.")
        uid = f"{len(self.steps):03d}-{_slug(step.name)}"
        self.steps.append(step)
        return uid

    def step(self, name: str, description: str) -> TopLevelStep:
        if name in self.top_level_steps:
            raise GraphConstructionError(f"Entry point '{name}' declared twice.")
        s = TopLevelStep(self, name, description)
        self.top_level_steps[name] = s
        return s

    def get_install_step(self) -> TopLevelStep:
        return self.install_step

    # --- paths, dependencies, options ---

    def path(self, *segments: str) -> LiteralPath:
        """Project-relative path; an absolute first segment is kept as the root."""
        if segments and Path(segments[0]).is_absolute():
            return LiteralPath(Path(segments[0])).join(*segments[1:])
        return LiteralPath(self.build_root).join(*segments)

    def dependency(self, name: str) -> Dependency:
        root = self.dependency_roots.get(name)
        if root is None:
            raise ConfigurationError(f"no source tree configured for dependency '{name}'")
        return Dependency(name, root)

    def option(self, name: str, description: str, default: bool = False) -> bool:
        """Boolean user option (-Dname=true|false)."""
        self.declared_options[name] = description
        raw = self.user_options.get(name)
        if raw is None:
            return default
        return parse_bool_option(name, raw)

    def check_user_options(self) -> None:
        """Every -D option given on the command line must have been declared."""
        unknown = sorted(set(self.user_options) - set(self.declared_options))
        if unknown:
            known = ", ".join(sorted(self.declared_options)) or "(none)"
            raise ConfigurationError(f"unknown option(s) {', '.join(unknown)}; declared options: {known}")

    def find_program(self, names: Sequence[str], paths: Sequence[str] = ()) -> Optional[str]:
        search = os.pathsep.join(str(p) for p in paths) if paths else None
        for n in names:
            found = shutil.which(n, path=search)
            if found:
                return found
        return None

    # --- step factories ---

    def add_system_command(self, argv: Sequence[str]) -> Run:
        return Run(self, argv)

    def add_static_library(self, name: str, toolchain: Toolchain,
                           target: Optional[TargetConfig] = None) -> Compile:
        return Compile(self, name, CompileKind.LIB, target or self.target, toolchain)

    def add_test(self, name: str, toolchain: Toolchain, root_source_file: LazyPath,
                 target: Optional[TargetConfig] = None) -> Compile:
        return Compile(self, name, CompileKind.TEST, target or self.target, toolchain,
                       root_source_file=root_source_file)

    def add_run_artifact(self, artifact: Compile) -> Run:
        run = Run(self, artifact.toolchain.run_prefix(), name=f"run {artifact.name}")
        run.add_artifact_arg(artifact)
        return run

    def add_install_directory(self, source_dir: LazyPath, install_subdir: str,
                              base_name: Optional[str] = None) -> InstallDir:
        return InstallDir(self, source_dir, install_subdir, base_name=base_name)

    def install_artifact(self, artifact: Compile) -> InstallArtifact:
        install = InstallArtifact(self, artifact)
        self.install_step.depend_on(install)
        return install

    def add_module(self, name: str, root_source_file: Optional[LazyPath] = None) -> Module:
        m = Module(name, root_source_file)
        self.modules[name] = m
        return m

    def add_named_lazy_path(self, name: str, path: LazyPath) -> None:
        self.named_lazy_paths[name] = path

    # --- finalization ---

    def finalize(self) -> None:
        if self.finalized:
            return

        for s in list(self.steps):
            hook = getattr(s, "finalize", None)
            if hook is not None:
                hook()

        for s in self.steps:
            for dep in s.dependencies:
                if dep.owner is not self:
                    raise GraphConstructionError(
                        f"Step '{s.name}' depends on '{dep.name}', which belongs to another build."
                    )

        self._check_acyclic()

        for s in self.steps:
            for gf in s.generated_files:
                gf.path = self.cache_root / "o" / s.uid / gf.basename

        self.finalized = True
        logger.debug("graph_finalized", steps=len(self.steps))

    def _check_acyclic(self) -> None:
        WHITE, GREY, BLACK = 0, 1, 2
        color: Dict[int, int] = {id(s): WHITE for s in self.steps}

        for root in self.steps:
            if color[id(root)] != WHITE:
                continue
            stack: List[tuple] = [(root, iter(root.dependencies))]
            path: List[Step] = [root]
            color[id(root)] = GREY
            while stack:
                node, it = stack[-1]
                nxt = next(it, None)
                if nxt is None:
                    color[id(node)] = BLACK
                    stack.pop()
                    path.pop()
                    continue
                c = color.get(id(nxt), WHITE)
                if c == GREY:
                    loop = path[path.index(nxt):] + [nxt]
                    raise GraphConstructionError(
                        "Dependency loop detected: " + " -> ".join(s.name for s in loop)
                    )
                if c == WHITE:
                    color[id(nxt)] = GREY
                    stack.append((nxt, iter(nxt.dependencies)))
                    path.append(nxt)

    # --- entry points ---

    def resolve_entry(self, name: str) -> Step:
        """A top-level step, or the producer of a named lazy path."""
        if name in self.top_level_steps:
            return self.top_level_steps[name]
        lazy = self.named_lazy_paths.get(name)
        if lazy is not None:
            producer = lazy.producer()
            if producer is not None:
                return producer
        raise UnknownEntryPointError(name, list(self.top_level_steps) + list(self.named_lazy_paths))

    def describe_steps(self) -> List[Dict[str, Any]]:
        out = [{"name": n, "description": s.description} for n, s in self.top_level_steps.items()]
        for n in self.named_lazy_paths:
            out.append({"name": n, "description": "Named output (builds its producer)"})
        return out

    # --- logs ---

    @property
    def log_dir(self) -> Path:
        return self.cache_root / "logs"

    def write_step_log(self, step: Step, argv: Sequence[str], stderr: str, stdout: str) -> Optional[Path]:
        log_path = self.log_dir / f"{step.uid}.log"
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.write_text(
                " ".join(argv) + "\n\n" + (stderr or "") + "\n" + (stdout or ""),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("step_log_write_failed", step=step.name, path=str(log_path), error=str(e))
            return None
        return log_path
