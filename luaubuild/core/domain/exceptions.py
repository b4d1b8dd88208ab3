# luaubuild/core/domain/exceptions.py
from typing import Optional


class BuildError(Exception):
    """Base class for all build-level exceptions."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

# --- Configuration Errors ---

class ConfigurationError(BuildError):
    """Raised when the target/optimize/option combination cannot be resolved."""
    def __init__(self, reason: str):
        super().__init__(f"Invalid build configuration: {reason}")

# --- Graph Errors ---

class GraphConstructionError(BuildError):
    """Raised for programming errors in the step graph (cycles, foreign steps, early resolution)."""
    pass


class UnknownEntryPointError(GraphConstructionError):
    """Raised when a caller requests a named entry point that was never declared."""
    def __init__(self, name: str, available: Optional[list] = None):
        self.name = name
        avail = ", ".join(sorted(available or [])) or "(none)"
        super().__init__(f"No entry point named '{name}'. Available: {avail}")

# --- Execution Errors ---

class ToolInvocationError(BuildError):
    """Raised when an external tool cannot be spawned or exits non-zero."""
    def __init__(self, tool: str, details: str, exit_code: Optional[int] = None):
        self.tool = tool
        self.exit_code = exit_code
        self.details = details
        if exit_code is None:
            super().__init__(f"{tool}: {details}")
        else:
            super().__init__(f"{tool} failed with exit code {exit_code}:\n{details}")


class InstallError(BuildError):
    """Raised when an artifact cannot be copied into the install prefix."""
    def __init__(self, path: str, details: str):
        self.path = path
        super().__init__(f"Install of '{path}' failed: {details}")
