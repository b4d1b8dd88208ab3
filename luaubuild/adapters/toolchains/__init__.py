# luaubuild/adapters/toolchains/__init__.py
from .emscripten import EmscriptenToolchain
from .native import NativeToolchain

__all__ = ["EmscriptenToolchain", "NativeToolchain"]
