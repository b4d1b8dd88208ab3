# luaubuild/__init__.py
"""Build orchestration for the Luau VM as a native static library or a wasm side module."""

__version__ = "0.1.0"
