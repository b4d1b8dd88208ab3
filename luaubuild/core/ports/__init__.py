# luaubuild/core/ports/__init__.py
"""
Core Ports (Interfaces).

A Toolchain is the capability the build graph needs from an external
compiler family: turn sources into objects, link objects into a library or
executable, and describe how to run what was linked. Exactly one
implementation is selected per invocation (see luaubuild.shared.container).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:
    from luaubuild.core.graph.compile import Compile, SourceFile


class Toolchain(ABC):
    """Port for a compiler/archiver/runner family (native or Emscripten)."""

    name: str = "toolchain"

    @abstractmethod
    def compile_command(self, step: "Compile", source: "SourceFile", obj: Path) -> List[str]:
        """argv compiling one source into one object file."""
        pass

    @abstractmethod
    def link_command(self, step: "Compile", objects: Sequence[Path], out: Path) -> List[str]:
        """argv producing the step's emitted binary (archive or executable) from objects."""
        pass

    @abstractmethod
    def emitted_basename(self, step: "Compile") -> str:
        """File name of the step's emitted binary (e.g. 'libluau.a', 'tests.js')."""
        pass

    @abstractmethod
    def run_prefix(self) -> List[str]:
        """argv placed before an executable artifact to run it (empty for native)."""
        pass
