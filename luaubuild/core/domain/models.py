# luaubuild/core/domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from luaubuild.core.domain.exceptions import ConfigurationError

if TYPE_CHECKING:
    from luaubuild.core.graph.compile import Compile
    from luaubuild.core.graph.lazy_path import LazyPath


# --- Enums ---

class Platform(str, Enum):
    """Which of the two mutually exclusive compile paths a target takes."""
    NATIVE = "native"
    EMSCRIPTEN = "emscripten"


class OptimizeMode(str, Enum):
    DEBUG = "Debug"
    RELEASE_SAFE = "ReleaseSafe"
    RELEASE_FAST = "ReleaseFast"
    RELEASE_SMALL = "ReleaseSmall"


class ArtifactKind(str, Enum):
    STATIC_LIBRARY = "static_library"  # native path, installable
    WASM_OBJECT = "wasm_object"        # wasm path, link input only


NATIVE_TRIPLE = "native"
EMSCRIPTEN_OS = "emscripten"


# --- Target ---

class TargetConfig(BaseModel):
    """
    Resolved once per invocation. The triple decides the platform:
    `<arch>-emscripten[-abi]` is the wasm path, everything else is native.
    """
    model_config = ConfigDict(frozen=True)

    triple: str = NATIVE_TRIPLE
    optimize: OptimizeMode = OptimizeMode.DEBUG
    luau_use_4_vector: bool = False

    @field_validator("triple")
    @classmethod
    def _check_triple(cls, v: str) -> str:
        v = (v or "").strip().lower() or NATIVE_TRIPLE
        if v == NATIVE_TRIPLE:
            return v

        parts = v.split("-")
        if len(parts) < 2 or not all(parts):
            raise ValueError(f"target '{v}' is not of the form <arch>-<os>[-<abi>]")

        arch, os_tag = parts[0], parts[1]
        if arch.startswith("wasm") and os_tag != EMSCRIPTEN_OS:
            raise ValueError(f"target '{v}' is not supported; only {arch}-emscripten builds WebAssembly")
        if os_tag == EMSCRIPTEN_OS and arch not in ("wasm32", "wasm64"):
            raise ValueError(f"target '{v}' is not supported; emscripten requires a wasm architecture")
        return v

    @property
    def platform(self) -> Platform:
        if self.triple != NATIVE_TRIPLE and self.triple.split("-")[1] == EMSCRIPTEN_OS:
            return Platform.EMSCRIPTEN
        return Platform.NATIVE

    @property
    def is_emscripten(self) -> bool:
        return self.platform is Platform.EMSCRIPTEN

    @property
    def vector_size(self) -> int:
        return 4 if self.luau_use_4_vector else 3

    @classmethod
    def resolve(
        cls,
        triple: Optional[str] = None,
        optimize: Optional[str] = None,
        luau_use_4_vector: bool = False,
    ) -> "TargetConfig":
        """Validate caller-supplied values, mapping pydantic failures to ConfigurationError."""
        try:
            return cls(
                triple=triple or NATIVE_TRIPLE,
                optimize=optimize or OptimizeMode.DEBUG,
                luau_use_4_vector=luau_use_4_vector,
            )
        except ValidationError as e:
            reasons = "; ".join(err.get("msg", "") for err in e.errors())
            raise ConfigurationError(reasons) from e


def parse_bool_option(name: str, raw: str) -> bool:
    """Only the literal strings 'true' and 'false' are accepted."""
    value = (raw or "").strip()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ConfigurationError(f"option '{name}' expects 'true' or 'false', got '{raw}'")


# --- Artifacts ---

@dataclass(frozen=True)
class Artifact:
    """
    Result of a compile-unit aggregation.

    static_library artifacts carry the Compile step (objects, headers,
    include dirs); wasm_object artifacts only carry the generated output.
    """
    kind: ArtifactKind
    name: str
    output: "LazyPath"
    compile_step: Optional["Compile"] = None

    @property
    def installable(self) -> bool:
        return self.kind is ArtifactKind.STATIC_LIBRARY


@dataclass
class InstalledOutput:
    """What an install step placed under the prefix."""
    base_name: str
    root: Path
    files: List[Path] = field(default_factory=list)
