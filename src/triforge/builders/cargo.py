"""Backend invoker for cargo-based web targets (WebAssembly, asm.js)."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Optional

from ..artifacts import IntermediateLocation
from ..config import ExampleUnit
from ..targets import Profile, TargetDescriptor
from .base import BuildResult, TargetBuilder


class CargoBuilder(TargetBuilder):
    """Compiles one build unit for one target triple with cargo.

    The build tree (``--target-dir``) is injected so tests and callers can
    point it at an isolated directory instead of the shared ``target/``.
    """

    def __init__(
        self,
        *,
        project_dir: Path,
        build_root: Path,
        profile: Profile = Profile.RELEASE,
        command: str = "cargo",
        timeout: int = 1800,
        env: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(command, timeout=timeout)
        self.project_dir = project_dir
        self.build_root = build_root
        self.profile = profile
        self.env = env

    @property
    def toolchain_name(self) -> str:
        return "cargo"

    def mode_for(self, target: TargetDescriptor) -> Profile:
        """A descriptor's own build mode wins over the pipeline profile."""
        return target.build_mode or self.profile

    def build_command(self, unit: ExampleUnit, target: TargetDescriptor) -> list[str]:
        argv = [self.command, "build"]
        if self.mode_for(target) == Profile.RELEASE:
            argv.append("--release")
        argv += [
            f"--target={target.toolchain_triple}",
            f"--{unit.kind}", unit.name,
            "--target-dir", str(self.build_root),
        ]
        return argv

    def intermediate_dir(self, unit: ExampleUnit, target: TargetDescriptor) -> Path:
        """Where cargo leaves this unit's output: ``<root>/<triple>/<profile>[/examples]``."""
        base = self.build_root / target.toolchain_triple / self.mode_for(target).value
        return base / "examples" if unit.kind == "example" else base

    def invoke(
        self,
        unit: ExampleUnit,
        target: TargetDescriptor,
        *,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> BuildResult:
        """Build *unit* for *target*; return the intermediate location on success."""
        t0 = time.monotonic()
        logs: list[str] = []

        def _log(msg: str) -> None:
            logs.append(msg)
            self._log(on_log, msg)

        argv = self.build_command(unit, target)
        cmd = " ".join(argv)
        _log(f"[{target.id}] $ {cmd}")

        self._run(argv, cwd=self.project_dir, env=self.env, on_log=_log, target_id=target.id)

        elapsed = time.monotonic() - t0
        directory = self.intermediate_dir(unit, target)
        _log(f"[{target.id}] Build OK in {elapsed:.1f}s – output in {directory}")

        return BuildResult(
            toolchain=self.toolchain_name,
            target_id=target.id,
            location=IntermediateLocation(directory=directory, target_id=target.id),
            output_dir=directory,
            message=f"{target.id} build succeeded",
            logs=logs,
            build_cmd=cmd,
            elapsed_seconds=elapsed,
        )
