from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC = (_PROJECT_ROOT / "src").resolve()
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from triforge.artifacts import IntermediateLocation  # noqa: E402
from triforge.builders.base import BuildResult, TargetBuilder  # noqa: E402
from triforge.config import ExampleUnit, PipelineConfig  # noqa: E402
from triforge.errors import CompilationFailed, ToolchainUnavailable  # noqa: E402
from triforge.targets import TargetDescriptor  # noqa: E402


class FakeCargo(TargetBuilder):
    """Writes cargo-shaped output instead of compiling.

    ``outputs`` maps target id -> list of filenames to create in the
    intermediate directory; ``fail`` maps target id -> exception to raise.
    """

    def __init__(
        self,
        build_root: Path,
        outputs: Optional[dict[str, list[str]]] = None,
        fail: Optional[dict[str, Exception]] = None,
    ) -> None:
        super().__init__("cargo")
        self.build_root = build_root
        self.outputs = outputs
        self.fail = fail or {}
        self.calls: list[str] = []
        self.units: list[ExampleUnit] = []

    @property
    def toolchain_name(self) -> str:
        return "cargo"

    def invoke(
        self,
        unit: ExampleUnit,
        target: TargetDescriptor,
        *,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> BuildResult:
        self.calls.append(target.id)
        self.units.append(unit)
        if target.id in self.fail:
            raise self.fail[target.id]

        directory = self.build_root / target.toolchain_triple / "release" / "examples"
        directory.mkdir(parents=True, exist_ok=True)
        names = (self.outputs or {}).get(
            target.id, [f"{unit.name}{ext}" for ext in target.output_extensions]
        )
        for name in names:
            (directory / name).write_text(f"{target.id}:{name}")
        return BuildResult(
            toolchain="cargo",
            target_id=target.id,
            location=IntermediateLocation(directory=directory, target_id=target.id),
        )


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(project_dir=tmp_path, unit=ExampleUnit("todo_mvc", "examples/todo_mvc.rs"))


@pytest.fixture
def fake_cargo(config: PipelineConfig) -> FakeCargo:
    return FakeCargo(config.build_root_path)


@pytest.fixture
def toolchain_missing() -> ToolchainUnavailable:
    return ToolchainUnavailable("cargo")


@pytest.fixture
def compile_error() -> CompilationFailed:
    return CompilationFailed("cargo build", 101, "error[E0425]: cannot find value `x`")
