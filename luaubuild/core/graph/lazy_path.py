# luaubuild/core/graph/lazy_path.py
"""
Deferred filesystem paths.

A LazyPath is a description, not a guarantee of existence. Three variants:

  - LiteralPath:     a known location (project-root paths are made absolute).
  - DependencyPath:  segments under a named upstream source tree.
  - GeneratedPath:   an output slot of a Step; its concrete location is only
                     assigned when the owning Build is finalized.

Resolution (`get_path`) is pure. Nothing here touches the filesystem.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

from luaubuild.core.domain.exceptions import GraphConstructionError

if TYPE_CHECKING:
    from luaubuild.core.graph.step import Step


def _segments(parts: Tuple[str, ...]) -> Tuple[str, ...]:
    out = []
    for p in parts:
        out.extend(s for s in str(p).replace("\\", "/").split("/") if s and s != ".")
    return tuple(out)


class LazyPath(ABC):
    @abstractmethod
    def get_path(self) -> Path:
        """Concrete path. Raises GraphConstructionError if not resolvable yet."""

    @abstractmethod
    def join(self, *segments: str) -> "LazyPath":
        ...

    @abstractmethod
    def dirname(self) -> "LazyPath":
        ...

    def producer(self) -> Optional["Step"]:
        """The Step that generates this path, if any."""
        return None

    def display(self) -> str:
        try:
            return str(self.get_path())
        except GraphConstructionError:
            return repr(self)


@dataclass(frozen=True)
class LiteralPath(LazyPath):
    path: Path

    def get_path(self) -> Path:
        return self.path

    def join(self, *segments: str) -> "LiteralPath":
        return LiteralPath(self.path.joinpath(*_segments(segments)))

    def dirname(self) -> "LiteralPath":
        return LiteralPath(self.path.parent)


@dataclass(frozen=True)
class Dependency:
    """Handle on a named upstream source tree (luau sources, emsdk)."""
    name: str
    root: Path

    def path(self, *segments: str) -> "DependencyPath":
        return DependencyPath(self, _segments(segments))


@dataclass(frozen=True)
class DependencyPath(LazyPath):
    dependency: Dependency
    sub_path: Tuple[str, ...] = ()

    def get_path(self) -> Path:
        return self.dependency.root.joinpath(*self.sub_path)

    def join(self, *segments: str) -> "DependencyPath":
        return DependencyPath(self.dependency, self.sub_path + _segments(segments))

    def dirname(self) -> "DependencyPath":
        return DependencyPath(self.dependency, self.sub_path[:-1])


@dataclass(eq=False)
class GeneratedFile:
    """One output slot of a Step. `path` is assigned by Build.finalize()."""
    step: "Step"
    basename: str
    path: Optional[Path] = field(default=None)

    def get_path(self) -> Path:
        if self.path is None:
            raise GraphConstructionError(
                f"Generated file '{self.basename}' of step '{self.step.name}' "
                f"was resolved before the build graph was finalized."
            )
        return self.path


@dataclass(frozen=True)
class GeneratedPath(LazyPath):
    file: GeneratedFile
    up: int = 0
    sub_path: Tuple[str, ...] = ()

    def get_path(self) -> Path:
        p = self.file.get_path()
        for _ in range(self.up):
            p = p.parent
        return p.joinpath(*self.sub_path)

    def join(self, *segments: str) -> "GeneratedPath":
        return GeneratedPath(self.file, self.up, self.sub_path + _segments(segments))

    def dirname(self) -> "GeneratedPath":
        if self.sub_path:
            return GeneratedPath(self.file, self.up, self.sub_path[:-1])
        return GeneratedPath(self.file, self.up + 1)

    def producer(self) -> Optional["Step"]:
        return self.file.step

    def __repr__(self) -> str:
        return f"GeneratedPath({self.file.step.name}:{self.file.basename}, up={self.up}, sub_path={self.sub_path})"


def path_join(*segments: str) -> str:
    """Join segments with '/', the separator used for dependency sub-paths."""
    return "/".join(_segments(segments))


__all__ = [
    "LazyPath",
    "LiteralPath",
    "Dependency",
    "DependencyPath",
    "GeneratedFile",
    "GeneratedPath",
    "path_join",
]
