"""Base builder interface for all toolchain backends."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from ..artifacts import IntermediateLocation
from ..errors import CompilationFailed, ToolchainUnavailable

if TYPE_CHECKING:
    from ..config import ExampleUnit
    from ..targets import TargetDescriptor

_logger = logging.getLogger("triforge.builders")


@dataclass
class BuildResult:
    """Result of a successful backend invocation."""

    toolchain: str
    target_id: str = ""
    location: Optional[IntermediateLocation] = None
    output_dir: Optional[Path] = None
    message: str = ""
    logs: list[str] = field(default_factory=list)
    build_cmd: str = ""
    elapsed_seconds: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict)


class Builder(ABC):
    """Abstract base for toolchain backends.

    Builders raise :class:`ToolchainUnavailable` when their executable
    cannot be started and :class:`CompilationFailed` when it exits
    non-zero.  They never retry.
    """

    def __init__(self, command: str, *, timeout: int = 1800) -> None:
        self.command = command
        self.timeout = timeout

    @property
    @abstractmethod
    def toolchain_name(self) -> str:
        """Return the backend family identifier (cargo, nwbuild)."""

    # ------------------------------------------------------------------
    # Helpers shared by all builders
    # ------------------------------------------------------------------

    @staticmethod
    def _log(on_log: Optional[Callable[[str], None]], msg: str) -> None:
        if on_log:
            try:
                on_log(msg)
            except Exception:
                _logger.debug("[builder] on_log callback raised", exc_info=True)

    def _run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Optional[dict[str, str]] = None,
        on_log: Optional[Callable[[str], None]] = None,
        target_id: Optional[str] = None,
    ) -> str:
        """Run *argv*, stream output to *on_log* and return the captured output.

        Raises ToolchainUnavailable if the executable cannot be found and
        CompilationFailed on a non-zero exit or timeout.
        """
        cmd = " ".join(str(a) for a in argv)
        run_env = os.environ.copy()
        if env:
            run_env.update(env)

        _logger.debug("[builder] Running: %s (cwd=%s, timeout=%ds)", cmd, cwd, self.timeout)
        t0 = time.monotonic()

        try:
            proc = subprocess.Popen(
                [str(a) for a in argv],
                cwd=str(cwd),
                env=run_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError:
            _logger.error("[builder] Executable not found: %s", argv[0])
            raise ToolchainUnavailable(str(argv[0]), target_id=target_id) from None
        except PermissionError as exc:
            _logger.error("[builder] Executable not runnable: %s (%s)", argv[0], exc)
            raise ToolchainUnavailable(str(argv[0]), target_id=target_id) from exc

        _logger.debug("[builder] Process started pid=%d", proc.pid)
        stdout_lines: list[str] = []

        def _pump() -> None:
            if proc.stdout:
                for line in proc.stdout:
                    s = line.rstrip("\n")
                    stdout_lines.append(s)
                    self._log(on_log, s)

        # stdout is drained on a thread so wait() can enforce the timeout
        reader = threading.Thread(target=_pump, name=f"triforge-{proc.pid}", daemon=True)
        reader.start()

        try:
            rc = proc.wait(timeout=self.timeout)
            reader.join()
        except subprocess.TimeoutExpired:
            elapsed = time.monotonic() - t0
            _logger.error(
                "[builder] Command TIMED OUT after %.1fs (limit=%ds) – killing pid=%d: %s",
                elapsed, self.timeout, proc.pid, cmd,
            )
            proc.kill()
            proc.wait(timeout=10)
            reader.join(timeout=5)
            stdout_lines.append(f"Timed out after {elapsed:.0f}s")
            raise CompilationFailed(cmd, -9, "\n".join(stdout_lines), target_id=target_id) from None

        elapsed = time.monotonic() - t0
        output = "\n".join(stdout_lines)
        if rc != 0:
            tail = "\n".join(stdout_lines[-15:]) if stdout_lines else "(no output)"
            _logger.warning("[builder] Command failed (exit=%d) in %.1fs: %s\nOutput tail:\n%s", rc, elapsed, cmd, tail)
            raise CompilationFailed(cmd, rc, output, target_id=target_id)

        _logger.info("[builder] Command succeeded (exit=0) in %.1fs: %s", elapsed, cmd)
        return output


class TargetBuilder(Builder):
    """A backend that compiles one build unit for one web target."""

    @abstractmethod
    def invoke(
        self,
        unit: "ExampleUnit",
        target: "TargetDescriptor",
        *,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> BuildResult:
        """Build *unit* for *target* and return where the artifacts are."""
