"""Copy build artifacts from toolchain build trees into the canonical output layout."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .artifacts import AmbiguityPolicy, BuildArtifact, IntermediateLocation, resolve_artifact
from .config import ExampleUnit
from .errors import FilesystemError, MissingArtifact
from .targets import TargetDescriptor

_logger = logging.getLogger("triforge.stager")


def ensure_dir(path: Path, *, target_id: Optional[str] = None) -> Path:
    """Create *path* and its parents if missing; safe under concurrent callers."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError("create", path, exc, target_id=target_id) from exc
    return path


def atomic_copy(src: Path, dest: Path, *, target_id: Optional[str] = None) -> Path:
    """Copy *src* to *dest* through a temp file so *dest* is never half-written."""
    tmp: Optional[Path] = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
        os.close(fd)
        tmp = Path(tmp_name)
        shutil.copyfile(src, tmp)
        shutil.copymode(src, tmp)
        os.replace(tmp, dest)
    except OSError as exc:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        raise FilesystemError("copy", src, exc, target_id=target_id) from exc
    return dest


class ArtifactStager:
    """Stages one target's artifacts under ``{unit}{infix}{ext}`` names.

    Every expected extension is resolved before anything is written, so a
    MissingArtifact leaves the output directory exactly as it was.
    """

    def __init__(self, policy: AmbiguityPolicy = AmbiguityPolicy.FIRST) -> None:
        self.policy = policy

    def locate(
        self,
        location: IntermediateLocation,
        unit: ExampleUnit,
        target: TargetDescriptor,
    ) -> list[BuildArtifact]:
        """Pick exactly one source file per expected extension."""
        found: list[BuildArtifact] = []
        for ext in target.output_extensions:
            explicit = location.explicit_artifact(ext)
            if explicit is not None and explicit.source_path.is_file():
                source: Optional[Path] = explicit.source_path
            else:
                source = resolve_artifact(
                    location.directory, unit.name, ext, policy=self.policy, target_id=target.id,
                )
            if source is None:
                raise MissingArtifact(unit.name, ext, location.directory, target_id=target.id)
            found.append(
                BuildArtifact(source_path=source, target_id=target.id, role=target.role_for(ext), extension=ext)
            )
        return found

    def stage(
        self,
        location: IntermediateLocation,
        unit: ExampleUnit,
        target: TargetDescriptor,
        output_root: Path,
    ) -> list[BuildArtifact]:
        """Copy *target*'s artifacts into *output_root*; overwrite any previous copies."""
        artifacts = self.locate(location, unit, target)
        ensure_dir(output_root, target_id=target.id)

        for artifact in artifacts:
            dest = output_root / target.canonical_name(unit.name, artifact.extension)
            atomic_copy(artifact.source_path, dest, target_id=target.id)
            artifact.staged_path = dest
            _logger.info("[stage] %s -> %s", artifact.source_path, dest)

        return artifacts

    def copy_assets(self, project_dir: Path, assets: list[str], output_root: Path) -> list[Path]:
        """Copy static files (e.g. ``html/index.html``) into *output_root* by basename."""
        sources = []
        for asset in assets:
            src = Path(asset) if Path(asset).is_absolute() else project_dir / asset
            if not src.is_file():
                raise MissingArtifact(src.stem, src.suffix, src.parent, target_id="assets")
            sources.append(src)

        ensure_dir(output_root, target_id="assets")
        copied = []
        for src in sources:
            copied.append(atomic_copy(src, output_root / src.name, target_id="assets"))
            _logger.info("[stage] asset %s -> %s", src, output_root / src.name)
        return copied
