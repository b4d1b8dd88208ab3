"""
luaubuild.core.graph

Build-graph model: lazy paths, steps, the Build that owns them, and the
parallel executor.
"""

from .build import Build
from .compile import Compile, CompileKind, LinkedStep, Module, StaticPath, SystemLibrary
from .executor import BuildSummary, make
from .install import InstallArtifact, InstallDir, InstallFile
from .lazy_path import Dependency, DependencyPath, GeneratedPath, LazyPath, LiteralPath
from .run import Run
from .step import Step, StepKind, StepState, TopLevelStep

__all__ = [
    "Build",
    "BuildSummary",
    "Compile",
    "CompileKind",
    "Dependency",
    "DependencyPath",
    "GeneratedPath",
    "InstallArtifact",
    "InstallDir",
    "InstallFile",
    "LazyPath",
    "LinkedStep",
    "LiteralPath",
    "Module",
    "Run",
    "StaticPath",
    "Step",
    "StepKind",
    "StepState",
    "SystemLibrary",
    "TopLevelStep",
    "make",
]
