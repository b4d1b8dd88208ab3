# luaubuild/shared/config.py
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from luaubuild.core.domain.exceptions import ConfigurationError
from luaubuild.core.domain.models import parse_bool_option


class Settings(BaseSettings):
    """
    Central Configuration Registry.
    Strictly typed and validated via Pydantic; every field can be set through
    a LUAUBUILD_* environment variable or a .env file.
    """

    # --- Project Layout ---
    PROJECT_ROOT: str = os.getcwd()

    # Upstream source trees (the only two dependencies this build locates)
    LUAU_SOURCE_DIR: str = "deps/luau"
    EMSDK_DIR: str = "deps/emsdk"

    # --- Outputs ---
    INSTALL_PREFIX: str = "build-out"
    CACHE_DIR: str = ".luaubuild-cache"

    # --- Native Toolchain ---
    CC: str = "cc"
    CXX: str = "c++"
    AR: str = "ar"

    # --- Binding Layer ---
    BINDING_SOURCE: str = "src/luau.cpp"
    BINDING_ROOT: str = "src/lib.cpp"
    TEST_SOURCE: str = "src/tests.cpp"

    # --- Build Defaults ---
    TARGET: str = "native"
    OPTIMIZE: str = "Debug"
    LUAU_USE_4_VECTOR: bool = False
    MAX_WORKERS: Optional[int] = None

    # --- Logging & Observability ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"
    OTEL_SERVICE_NAME: str = "luaubuild"
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    @field_validator("LUAU_USE_4_VECTOR", mode="before")
    @classmethod
    def strict_bool_toggle(cls, v):
        # Same vocabulary as -D options: exactly "true" or "false".
        if isinstance(v, bool):
            return v
        try:
            return parse_bool_option("LUAUBUILD_LUAU_USE_4_VECTOR", str(v))
        except ConfigurationError as e:
            raise ValueError(e.message) from e

    # --- Dynamic Path Resolution ---

    def _anchored(self, value: str) -> Path:
        p = Path(value).expanduser()
        return p if p.is_absolute() else Path(self.PROJECT_ROOT) / p

    @property
    def project_root(self) -> Path:
        return Path(self.PROJECT_ROOT).resolve()

    @property
    def luau_source_dir(self) -> Path:
        return self._anchored(self.LUAU_SOURCE_DIR).resolve()

    @property
    def emsdk_dir(self) -> Path:
        return self._anchored(self.EMSDK_DIR).resolve()

    @property
    def install_prefix(self) -> Path:
        return self._anchored(self.INSTALL_PREFIX).resolve()

    @property
    def cache_dir(self) -> Path:
        return self._anchored(self.CACHE_DIR).resolve()

    model_config = SettingsConfigDict(env_prefix="LUAUBUILD_", env_file=".env", extra="ignore")


def get_settings(**overrides) -> Settings:
    """
    Fresh settings (environment re-read), with explicit overrides applied.
    Invalid values raise ConfigurationError.
    """
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"invalid settings: {problems}") from e
