# luaubuild/orchestrator/__init__.py
from .build import BuildOutputs, build_luau_project, configure, create_build

__all__ = ["BuildOutputs", "build_luau_project", "configure", "create_build"]
