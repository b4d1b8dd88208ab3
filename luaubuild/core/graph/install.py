# luaubuild/core/graph/install.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import structlog

from luaubuild.core.domain.exceptions import InstallError
from luaubuild.core.domain.models import InstalledOutput
from luaubuild.core.graph.compile import Compile, CompileKind
from luaubuild.core.graph.lazy_path import LazyPath
from luaubuild.core.graph.step import Step, StepKind

if TYPE_CHECKING:
    from luaubuild.core.graph.build import Build

logger = structlog.get_logger()


def _copy_file(src: Path, dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        raise InstallError(str(dest), f"{e.strerror or e} (from {src})") from e


class InstallFile(Step):
    kind = StepKind.INSTALL_FILE

    def __init__(self, owner: "Build", source: LazyPath, dest_rel_path: str):
        super().__init__(owner, f"install {dest_rel_path}")
        self.source = source
        self.dest_rel_path = dest_rel_path
        self.depend_on_path(source)

    @property
    def dest_path(self) -> Path:
        return self.owner.install_prefix / self.dest_rel_path

    def make(self) -> None:
        _copy_file(self.source.get_path(), self.dest_path)


class InstallDir(Step):
    """
    Copy every file under `source_dir` into `<prefix>/<install_subdir>`.
    Used for tools that emit sibling outputs next to one declared file.
    """

    kind = StepKind.INSTALL_DIR

    def __init__(self, owner: "Build", source_dir: LazyPath, install_subdir: str,
                 exclude_extensions: Optional[List[str]] = None, base_name: Optional[str] = None):
        super().__init__(owner, f"install {install_subdir}/")
        self.source_dir = source_dir
        self.install_subdir = install_subdir
        self.base_name = base_name or install_subdir
        self.exclude_extensions = list(exclude_extensions or [])
        self.installed: Optional[InstalledOutput] = None
        self.depend_on_path(source_dir)

    @property
    def dest_dir(self) -> Path:
        return self.owner.install_prefix / self.install_subdir

    def make(self) -> None:
        src_dir = self.source_dir.get_path()
        if not src_dir.is_dir():
            raise InstallError(str(self.dest_dir), f"source directory {src_dir} does not exist")

        files: List[Path] = []
        for src in sorted(src_dir.rglob("*")):
            if not src.is_file() or src.suffix in self.exclude_extensions:
                continue
            dest = self.dest_dir / src.relative_to(src_dir)
            _copy_file(src, dest)
            files.append(dest)

        self.installed = InstalledOutput(base_name=self.base_name, root=self.dest_dir, files=files)
        logger.info("install_dir_done", step=self.name, dest=str(self.dest_dir), files=len(files))


class InstallArtifact(Step):
    """
    Install a Compile step's emitted binary plus its installed headers.
    Libraries go to <prefix>/lib, executables to <prefix>/bin. Each header
    gets its own InstallFile step targeting <prefix>/include/<name>, with the
    original directory dropped.
    """

    kind = StepKind.INSTALL_ARTIFACT

    def __init__(self, owner: "Build", artifact: Compile):
        super().__init__(owner, f"install {artifact.name}")
        self.artifact = artifact
        self.installed: Optional[InstalledOutput] = None
        self.depend_on(artifact)

        self.header_steps: List[InstallFile] = []
        for header in artifact.installed_headers:
            hs = InstallFile(owner, header.source, f"include/{Path(header.dest).name}")
            self.header_steps.append(hs)
            self.depend_on(hs)

    @property
    def dest_dir(self) -> Path:
        sub = "lib" if self.artifact.compile_kind is CompileKind.LIB else "bin"
        return self.owner.install_prefix / sub

    def make(self) -> None:
        bin_path = self.artifact.get_emitted_bin().get_path()
        dest = self.dest_dir / bin_path.name
        _copy_file(bin_path, dest)

        files = [dest] + [hs.dest_path for hs in self.header_steps]
        self.installed = InstalledOutput(base_name=self.artifact.name, root=self.owner.install_prefix, files=files)
        logger.info("install_artifact_done", step=self.name, files=[str(f) for f in files])
