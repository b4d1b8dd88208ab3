# luaubuild/core/graph/step.py
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from luaubuild.core.domain.exceptions import GraphConstructionError
from luaubuild.core.graph.lazy_path import GeneratedFile, GeneratedPath, LazyPath

if TYPE_CHECKING:
    from luaubuild.core.graph.build import Build


class StepKind(str, Enum):
    TOP_LEVEL = "top_level"
    COMPILE = "compile"
    RUN = "run"
    INSTALL_ARTIFACT = "install_artifact"
    INSTALL_DIR = "install_dir"
    INSTALL_FILE = "install_file"


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    DEPENDENCY_FAILURE = "dependency_failure"


class Step(ABC):
    """
    One schedulable build action.

    Steps are created through a Build (which registers and owns them) and
    wired together with depend_on(). `make()` performs the action and raises
    a BuildError subclass on failure.
    """

    kind: StepKind

    def __init__(self, owner: "Build", name: str):
        self.owner = owner
        self.name = name
        self.dependencies: List[Step] = []
        self.generated_files: List[GeneratedFile] = []
        self.state = StepState.PENDING
        self.error: Optional[str] = None
        self.uid = owner.register_step(self)

    def depend_on(self, other: "Step") -> None:
        if other is self:
            raise GraphConstructionError(f"Step '{self.name}' cannot depend on itself.")
        if other not in self.dependencies:
            self.dependencies.append(other)

    def depend_on_path(self, lazy: LazyPath) -> None:
        """Add an edge to the producer of `lazy`, if it has one."""
        producer = lazy.producer()
        if producer is not None:
            self.depend_on(producer)

    def _generated(self, basename: str) -> GeneratedPath:
        gf = GeneratedFile(step=self, basename=basename)
        self.generated_files.append(gf)
        return GeneratedPath(gf)

    @abstractmethod
    def make(self) -> None:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} {self.state.value}>"


class TopLevelStep(Step):
    """A named, user-invocable entry point ('install', 'test')."""

    kind = StepKind.TOP_LEVEL

    def __init__(self, owner: "Build", name: str, description: str):
        super().__init__(owner, name)
        self.description = description

    def make(self) -> None:
        return None
