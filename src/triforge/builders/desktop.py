"""Builder for native desktop bundles (NW.js via nwbuild)."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..errors import FilesystemError
from ..targets import DEFAULT_DESKTOP_PLATFORMS, DesktopPlatform
from .base import Builder, BuildResult


class NwBuilder(Builder):
    """Drives ``nwbuild`` across a fixed OS/architecture list.

    The bundler owns its output tree: this adapter only passes the platform
    set and build directory through and reports success or failure.  A
    failure on any platform surfaces as a single CompilationFailed for the
    whole set.
    """

    def __init__(
        self,
        *,
        command: str = "nwbuild",
        cwd: Optional[Path] = None,
        timeout: int = 3600,
        extra_args: Sequence[str] = (),
        env: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(command, timeout=timeout)
        self.cwd = cwd
        self.extra_args = list(extra_args)
        self.env = env

    @property
    def toolchain_name(self) -> str:
        return "nwbuild"

    def build_command(
        self,
        source_dir: Path,
        platforms: Iterable[DesktopPlatform],
        output_root: Path,
    ) -> list[str]:
        names = ",".join(DesktopPlatform(p).value for p in platforms)
        return [
            self.command,
            "--platforms", names,
            "--buildDir", str(output_root),
            *self.extra_args,
            str(source_dir),
        ]

    def build_bundles(
        self,
        source_dir: Path,
        platforms: Optional[Iterable[DesktopPlatform]] = None,
        output_root: Path = Path("dist"),
        *,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> BuildResult:
        """Package *source_dir* for every platform into *output_root*."""
        t0 = time.monotonic()
        logs: list[str] = []
        selected = tuple(platforms) if platforms else DEFAULT_DESKTOP_PLATFORMS

        def _log(msg: str) -> None:
            logs.append(msg)
            self._log(on_log, msg)

        try:
            output_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError("create", output_root, exc, target_id="desktop") from exc

        argv = self.build_command(source_dir, selected, output_root)
        cmd = " ".join(argv)
        _log(f"[desktop] Bundling for {', '.join(p.value for p in selected)}")
        _log(f"[desktop] $ {cmd}")

        self._run(argv, cwd=self.cwd or source_dir.parent, env=self.env, on_log=_log, target_id="desktop")

        elapsed = time.monotonic() - t0
        _log(f"[desktop] Bundles written to {output_root} in {elapsed:.1f}s")

        return BuildResult(
            toolchain=self.toolchain_name,
            target_id="desktop",
            output_dir=output_root,
            message=f"Desktop bundles built for {len(selected)} platform(s)",
            logs=logs,
            build_cmd=cmd,
            elapsed_seconds=elapsed,
            extra={"platforms": [p.value for p in selected]},
        )
