"""Error taxonomy for triforge builds.

Every error raised while building or staging a single target carries the
``target_id`` it belongs to so the pipeline can aggregate failures per
target.  Nothing in triforge retries: all of these are toolchain or
environment problems, not transient conditions.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .artifacts import OutputLayout


class BuildError(Exception):
    """Base class for every triforge failure."""

    def __init__(self, message: str, *, target_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.target_id = target_id

    def __str__(self) -> str:
        return self.message


class ToolchainUnavailable(BuildError):
    """The external tool could not be executed (not installed / not on PATH)."""

    def __init__(self, command: str, *, target_id: Optional[str] = None) -> None:
        super().__init__(f"Toolchain not available: '{command}' was not found on PATH", target_id=target_id)
        self.command = command


class CompilationFailed(BuildError):
    """The external tool exited non-zero."""

    def __init__(
        self,
        command: str,
        returncode: int,
        output: str = "",
        *,
        target_id: Optional[str] = None,
    ) -> None:
        super().__init__(f"'{command}' failed with exit code {returncode}", target_id=target_id)
        self.command = command
        self.returncode = returncode
        self.output = output

    def output_tail(self, lines: int = 15) -> str:
        tail = self.output.splitlines()[-lines:]
        return "\n".join(tail) if tail else "(no output)"


class MissingArtifact(BuildError):
    """A successful build produced no file for an expected extension."""

    def __init__(self, name: str, extension: str, directory: Path, *, target_id: Optional[str] = None) -> None:
        super().__init__(f"No '{name}*{extension}' artifact found in {directory}", target_id=target_id)
        self.extension = extension
        self.directory = directory


class StageAmbiguous(BuildError):
    """More than one candidate file matched an expected artifact."""

    def __init__(self, extension: str, candidates: Sequence[Path], *, target_id: Optional[str] = None) -> None:
        names = ", ".join(p.name for p in candidates)
        super().__init__(f"Ambiguous '{extension}' artifact: {names}", target_id=target_id)
        self.extension = extension
        self.candidates = list(candidates)


class FilesystemError(BuildError):
    """A filesystem operation (copy, mkdir, remove) failed."""

    def __init__(self, operation: str, path: Path, cause: OSError, *, target_id: Optional[str] = None) -> None:
        super().__init__(f"Failed to {operation} {path}: {cause}", target_id=target_id)
        self.operation = operation
        self.path = path
        self.cause = cause


class AggregateBuildError(BuildError):
    """One or more targets of a pipeline run failed."""

    def __init__(
        self,
        errors: dict[str, BuildError],
        *,
        skipped: Sequence[str] = (),
        layout: Optional["OutputLayout"] = None,
    ) -> None:
        failed = ", ".join(errors)
        super().__init__(f"{len(errors)} target(s) failed: {failed}")
        self.errors = dict(errors)
        self.skipped = list(skipped)
        self.layout = layout
