"""Artifact models shared by builders, the stager and the pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import FilesystemError, StageAmbiguous
from .targets import ArtifactRole

_logger = logging.getLogger("triforge.artifacts")


class AmbiguityPolicy(str, Enum):
    """What to do when several files match one expected artifact."""

    FIRST = "first"  # lexicographically smallest name wins
    ERROR = "error"


@dataclass
class BuildArtifact:
    """A single file produced by one target's build."""

    source_path: Path
    target_id: str
    role: ArtifactRole
    extension: str
    staged_path: Optional[Path] = None


@dataclass
class IntermediateLocation:
    """Toolchain-owned directory holding a target's build output.

    A backend that knows its exact outputs may fill ``artifacts``; the
    stager then uses those files instead of scanning ``directory``.
    """

    directory: Path
    target_id: str
    artifacts: list[BuildArtifact] = field(default_factory=list)

    def explicit_artifact(self, extension: str) -> Optional[BuildArtifact]:
        for artifact in self.artifacts:
            if artifact.extension == extension:
                return artifact
        return None


@dataclass
class TargetOutcome:
    """Per-target record of a pipeline run."""

    target_id: str
    success: bool
    artifacts: list[BuildArtifact] = field(default_factory=list)
    error: Optional[Exception] = None
    skipped: bool = False
    elapsed_seconds: float = 0.0


@dataclass
class OutputLayout:
    """Canonical output directory for one profile (``out/<profile>``)."""

    root: Path
    files: dict[str, BuildArtifact] = field(default_factory=dict)
    outcomes: dict[str, TargetOutcome] = field(default_factory=dict)

    def add(self, artifacts: list[BuildArtifact]) -> None:
        for artifact in artifacts:
            if artifact.staged_path is not None:
                self.files[artifact.staged_path.name] = artifact

    @property
    def succeeded(self) -> list[str]:
        return [t for t, o in self.outcomes.items() if o.success]

    @property
    def failed(self) -> list[str]:
        return [t for t, o in self.outcomes.items() if not o.success and not o.skipped]


def _matches_unit(filename: str, unit_name: str, extension: str) -> bool:
    # cargo suffixes hashed copies as "<name>-<hash><ext>"
    if not filename.startswith(unit_name) or not filename.endswith(extension):
        return False
    rest = filename[len(unit_name):]
    return rest == extension or rest[:1] in ("-", ".")


def find_candidates(
    directory: Path,
    unit_name: str,
    extension: str,
    *,
    target_id: Optional[str] = None,
) -> list[Path]:
    """Return files in *directory* that could be the *extension* artifact, sorted by name."""
    if not directory.is_dir():
        return []
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise FilesystemError("list", directory, exc, target_id=target_id) from exc
    return sorted(
        (p for p in entries if p.is_file() and _matches_unit(p.name, unit_name, extension)),
        key=lambda p: p.name,
    )


def resolve_artifact(
    directory: Path,
    unit_name: str,
    extension: str,
    *,
    policy: AmbiguityPolicy = AmbiguityPolicy.FIRST,
    target_id: Optional[str] = None,
) -> Optional[Path]:
    """Pick exactly one file for *extension*, or ``None`` if nothing matches.

    An exact ``<name><ext>`` file always wins.  Otherwise the remaining
    candidates are resolved according to *policy*.
    """
    exact = directory / f"{unit_name}{extension}"
    if exact.is_file():
        return exact

    candidates = find_candidates(directory, unit_name, extension, target_id=target_id)
    if not candidates:
        return None
    if len(candidates) > 1:
        if policy == AmbiguityPolicy.ERROR:
            raise StageAmbiguous(extension, candidates, target_id=target_id)
        _logger.warning(
            "[stage] %d candidates for %s%s in %s, using %s",
            len(candidates), unit_name, extension, directory, candidates[0].name,
        )
    return candidates[0]
