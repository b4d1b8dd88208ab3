# luaubuild/core/graph/run.py
"""
External Tool Invoker.

A Run step invokes exactly one external executable. Its argv is a mix of
literal strings, LazyPath file arguments (resolved immediately before the
spawn), artifact arguments (the emitted binary of a Compile step) and
declared outputs (placeholders that become GeneratedPaths for consumers).
"""
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

import structlog

from luaubuild.core.domain.exceptions import ToolInvocationError
from luaubuild.core.graph.lazy_path import GeneratedPath, LazyPath
from luaubuild.core.graph.step import Step, StepKind

if TYPE_CHECKING:
    from luaubuild.core.graph.build import Build
    from luaubuild.core.graph.compile import Compile

logger = structlog.get_logger()

# How much of stderr goes to the console; the full text goes to the step log.
_STDERR_TAIL = 2000


def _run(cmd: List[str]) -> subprocess.CompletedProcess:
    """Run a command with consistent subprocess settings, inheriting cwd and environment."""
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )


# --- argv items ---

@dataclass(frozen=True)
class _Literal:
    value: str


@dataclass(frozen=True)
class _FileArg:
    prefix: str
    path: LazyPath


@dataclass(frozen=True)
class _ArtifactArg:
    compile_step: "Compile"


@dataclass(frozen=True)
class _OutputArg:
    prefix: str
    path: GeneratedPath


_Arg = Union[_Literal, _FileArg, _ArtifactArg, _OutputArg]


class Run(Step):
    kind = StepKind.RUN

    def __init__(self, owner: "Build", argv: Sequence[str] = (), name: Optional[str] = None):
        if name is None:
            name = f"run {Path(argv[0]).name}" if argv else "run"
        super().__init__(owner, name)
        self.argv: List[_Arg] = []

        self.exit_code: Optional[int] = None
        self.stdout: str = ""
        self.stderr: str = ""

        self.add_args(argv)

    def set_name(self, name: str) -> None:
        """Display name used in logs and errors (hides the executable's full path)."""
        self.name = name

    # --- argument construction ---

    def add_arg(self, arg: str) -> None:
        self.argv.append(_Literal(str(arg)))

    def add_args(self, args: Sequence[str]) -> None:
        for a in args:
            self.add_arg(a)

    def add_file_arg(self, path: LazyPath) -> None:
        self.add_prefixed_file_arg("", path)

    def add_prefixed_file_arg(self, prefix: str, path: LazyPath) -> None:
        self.argv.append(_FileArg(prefix, path))
        self.depend_on_path(path)

    def add_artifact_arg(self, compile_step: "Compile") -> None:
        self.argv.append(_ArtifactArg(compile_step))
        self.depend_on(compile_step)

    def add_output_file_arg(self, basename: str) -> GeneratedPath:
        return self.add_prefixed_output_file_arg("", basename)

    def add_prefixed_output_file_arg(self, prefix: str, basename: str) -> GeneratedPath:
        out = self._generated(basename)
        self.argv.append(_OutputArg(prefix, out))
        return out

    # --- execution ---

    def resolved_argv(self) -> List[str]:
        out: List[str] = []
        for a in self.argv:
            if isinstance(a, _Literal):
                out.append(a.value)
            elif isinstance(a, _FileArg):
                out.append(a.prefix + str(a.path.get_path()))
            elif isinstance(a, _ArtifactArg):
                out.append(str(a.compile_step.get_emitted_bin().get_path()))
            else:
                out.append(a.prefix + str(a.path.get_path()))
        return out

    def make(self) -> None:
        argv = self.resolved_argv()
        if not argv:
            raise ToolInvocationError(self.name, "empty command line")

        for gf in self.generated_files:
            gf.get_path().parent.mkdir(parents=True, exist_ok=True)

        logger.debug("tool_spawn", step=self.name, argv=argv)

        try:
            proc = _run(argv)
        except OSError as e:
            raise ToolInvocationError(self.name, f"cannot spawn '{argv[0]}': {e.strerror or e}") from e

        self.exit_code = proc.returncode
        self.stdout = proc.stdout or ""
        self.stderr = proc.stderr or ""

        if proc.returncode != 0:
            log_path = self.owner.write_step_log(self, argv, self.stderr, self.stdout)
            logger.error(
                "tool_failed",
                step=self.name,
                exit_code=proc.returncode,
                stderr=self.stderr.strip()[-_STDERR_TAIL:],
                log=str(log_path) if log_path else None,
            )
            raise ToolInvocationError(
                self.name,
                self.stderr if self.stderr.strip() else (self.stdout or "(no output)"),
                exit_code=proc.returncode,
            )
