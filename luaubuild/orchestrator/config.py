# luaubuild/orchestrator/config.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict

import structlog

from luaubuild.shared.config import Settings

logger = structlog.get_logger()


# -----------------------------------------------------------------------------
# Declared -D options
# -----------------------------------------------------------------------------
LUAU_USE_4_VECTOR_OPTION = "luau_use_4_vector"

OPTION_DESCRIPTIONS: Dict[str, str] = {
    LUAU_USE_4_VECTOR_OPTION: "Build Luau to use 4-vectors instead of the default 3-vector.",
}


# -----------------------------------------------------------------------------
# Tool binaries
# -----------------------------------------------------------------------------
def resolve_tool_bin(exe: str, default: str, root: Path) -> str:
    """
    Resolve a tool binary:
      - absolute path -> keep
      - relative path that exists under the project root -> convert to absolute
      - otherwise -> keep (and rely on PATH)
    """
    exe = (exe or "").strip() or default
    p = Path(exe)

    if p.is_absolute():
        return str(p)

    if len(p.parts) > 1:
        candidate = (root / p).resolve()
        if candidate.is_file():
            return str(candidate)

    return exe


# -----------------------------------------------------------------------------
# Directories
# -----------------------------------------------------------------------------
def ensure_dirs_exist(cache_dir: Path) -> None:
    (cache_dir / "o").mkdir(parents=True, exist_ok=True)
    (cache_dir / "logs").mkdir(parents=True, exist_ok=True)


def clean_artifacts(cache_dir: Path) -> None:
    """Remove the cache directory (objects, generated files, step logs)."""
    if not cache_dir.exists():
        logger.info("clean_skipped", cache_dir=str(cache_dir), reason="missing")
        return
    logger.info("clean_started", cache_dir=str(cache_dir))
    shutil.rmtree(cache_dir)
    logger.info("clean_done", cache_dir=str(cache_dir))


def dependency_roots(settings: Settings) -> Dict[str, Path]:
    """The two upstream source trees this build locates."""
    return {
        "luau": settings.luau_source_dir,
        "emsdk": settings.emsdk_dir,
    }
