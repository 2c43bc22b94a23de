"""Tests for the build pipeline orchestrator."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import FakeCargo
from triforge.builders.base import BuildResult
from triforge.builders.desktop import NwBuilder
from triforge.config import ExampleUnit, PipelineConfig
from triforge.errors import (
    AggregateBuildError,
    CompilationFailed,
    MissingArtifact,
    ToolchainUnavailable,
)
from triforge.pipeline import Pipeline
from triforge.targets import ASMJS_TARGET, WASM_TARGET, DesktopPlatform, Profile, TargetDescriptor


def _staged(config: PipelineConfig) -> list[str]:
    return sorted(p.name for p in config.output_root.iterdir())


def test_full_run_stages_todo_mvc(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    layout = Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets()

    assert config.output_root == config.project_dir / "out" / "release"
    assert _staged(config) == ["todo_mvc.asm.js", "todo_mvc.js", "todo_mvc.wasm"]
    assert sorted(layout.files) == ["todo_mvc.asm.js", "todo_mvc.js", "todo_mvc.wasm"]
    assert layout.succeeded == ["wasm", "asmjs"]
    assert fake_cargo.calls == ["wasm", "asmjs"]


def test_staged_content_comes_from_the_right_target(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets()
    assert (config.output_root / "todo_mvc.js").read_text() == "wasm:todo_mvc.js"
    assert (config.output_root / "todo_mvc.asm.js").read_text() == "asmjs:todo_mvc.js"


def test_hashed_wasm_is_renamed(config: PipelineConfig) -> None:
    cargo = FakeCargo(config.build_root_path, outputs={"wasm": ["todo_mvc-5e1c0d.wasm", "todo_mvc.js", "todo_mvc.d"]})
    Pipeline(config, builders={"cargo": cargo}).build_web_targets(targets=[WASM_TARGET])
    assert _staged(config) == ["todo_mvc.js", "todo_mvc.wasm"]


def test_rebuild_is_byte_identical(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    pipeline = Pipeline(config, builders={"cargo": fake_cargo})
    pipeline.build_web_targets()
    first = {p.name: p.read_bytes() for p in config.output_root.iterdir()}

    pipeline.build_web_targets()
    second = {p.name: p.read_bytes() for p in config.output_root.iterdir()}

    assert first == second


def test_fail_soft_keeps_other_targets(config: PipelineConfig, toolchain_missing: ToolchainUnavailable) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"asmjs": toolchain_missing})

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": cargo}).build_web_targets(fail_fast=False)

    err = exc_info.value
    assert list(err.errors) == ["asmjs"]
    assert isinstance(err.errors["asmjs"], ToolchainUnavailable)
    assert err.errors["asmjs"].target_id == "asmjs"
    assert err.layout.succeeded == ["wasm"]
    assert _staged(config) == ["todo_mvc.js", "todo_mvc.wasm"]


def test_fail_soft_runs_every_target(config: PipelineConfig, compile_error: CompilationFailed) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"wasm": compile_error})

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": cargo}).build_web_targets()

    assert cargo.calls == ["wasm", "asmjs"]
    assert exc_info.value.errors["wasm"].returncode == 101
    assert _staged(config) == ["todo_mvc.asm.js"]


def test_fail_fast_stops_and_keeps_earlier_output(config: PipelineConfig, toolchain_missing: ToolchainUnavailable) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"asmjs": toolchain_missing})

    with pytest.raises(AggregateBuildError):
        Pipeline(config, builders={"cargo": cargo}).build_web_targets(fail_fast=True)

    assert _staged(config) == ["todo_mvc.js", "todo_mvc.wasm"]


def test_fail_fast_marks_remaining_targets_skipped(config: PipelineConfig, compile_error: CompilationFailed) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"wasm": compile_error})

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": cargo}).build_web_targets(fail_fast=True)

    err = exc_info.value
    assert cargo.calls == ["wasm"]
    assert err.skipped == ["asmjs"]
    assert err.layout.outcomes["asmjs"].skipped
    assert list(config.output_root.iterdir()) == []


def test_missing_artifact_is_reported_per_target(config: PipelineConfig) -> None:
    cargo = FakeCargo(config.build_root_path, outputs={"wasm": ["todo_mvc.js"]})

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": cargo}).build_web_targets()

    err = exc_info.value.errors["wasm"]
    assert isinstance(err, MissingArtifact)
    assert err.extension == ".wasm"
    assert _staged(config) == ["todo_mvc.asm.js"]


def test_parallel_run(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    layout = Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets(parallel=True)
    assert _staged(config) == ["todo_mvc.asm.js", "todo_mvc.js", "todo_mvc.wasm"]
    assert list(layout.outcomes) == ["wasm", "asmjs"]


def test_parallel_run_aggregates_failures(config: PipelineConfig, toolchain_missing: ToolchainUnavailable) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"asmjs": toolchain_missing})

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": cargo}).build_web_targets(parallel=True)

    assert list(exc_info.value.errors) == ["asmjs"]
    assert _staged(config) == ["todo_mvc.js", "todo_mvc.wasm"]


def test_unexpected_errors_propagate(config: PipelineConfig) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"wasm": RuntimeError("bug")})
    with pytest.raises(RuntimeError, match="bug"):
        Pipeline(config, builders={"cargo": cargo}).build_web_targets()


def test_output_root_created_even_when_everything_fails(config: PipelineConfig, compile_error: CompilationFailed) -> None:
    cargo = FakeCargo(config.build_root_path, fail={"wasm": compile_error, "asmjs": compile_error})
    with pytest.raises(AggregateBuildError):
        Pipeline(config, builders={"cargo": cargo}).build_web_targets()
    assert config.output_root.is_dir()


def test_debug_profile_output_root(tmp_path: Path) -> None:
    config = PipelineConfig(project_dir=tmp_path, profile=Profile.DEBUG)
    cargo = FakeCargo(config.build_root_path)
    layout = Pipeline(config, builders={"cargo": cargo}).build_web_targets(targets=[ASMJS_TARGET])
    assert layout.root == tmp_path / "out" / "debug"
    assert (tmp_path / "out" / "debug" / "todo_mvc.asm.js").exists()


def test_explicit_unit(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    unit = ExampleUnit("counter", "examples/counter.rs")
    Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets(unit=unit)
    assert _staged(config) == ["counter.asm.js", "counter.js", "counter.wasm"]


def test_assets_are_copied(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    (config.project_dir / "html").mkdir()
    (config.project_dir / "html" / "index.html").write_text("<script src='todo_mvc.js'></script>")
    config.assets = ["html/index.html"]

    Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets()

    assert _staged(config) == ["index.html", "todo_mvc.asm.js", "todo_mvc.js", "todo_mvc.wasm"]


def test_missing_asset_is_aggregated(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    config.assets = ["html/index.html"]

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets()

    assert list(exc_info.value.errors) == ["assets"]
    assert fake_cargo.calls == ["wasm", "asmjs"]


def test_unregistered_toolchain_fails_only_its_target(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    custom = TargetDescriptor(id="custom", toolchain_triple="wasm32-wasi", output_extensions=(".wasm",), toolchain="emcc")
    config.targets = [custom, WASM_TARGET]

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets(fail_fast=False)

    err = exc_info.value.errors["custom"]
    assert list(exc_info.value.errors) == ["custom"]
    assert "No builder registered" in str(err)
    assert err.target_id == "custom"
    assert fake_cargo.calls == ["wasm"]
    assert _staged(config) == ["todo_mvc.js", "todo_mvc.wasm"]


def test_unregistered_toolchain_in_parallel_run(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    custom = TargetDescriptor(id="custom", toolchain_triple="wasm32-wasi", output_extensions=(".wasm",), toolchain="emcc")
    config.targets = [custom, WASM_TARGET]

    with pytest.raises(AggregateBuildError) as exc_info:
        Pipeline(config, builders={"cargo": fake_cargo}).build_web_targets(parallel=True)

    assert list(exc_info.value.errors) == ["custom"]
    assert exc_info.value.layout.succeeded == ["wasm"]


def test_builder_resolved_from_registry(config: PipelineConfig) -> None:
    from triforge.builders.cargo import CargoBuilder

    builder = Pipeline(config).builder_for(WASM_TARGET)
    assert isinstance(builder, CargoBuilder)
    assert builder.build_root == config.build_root_path


# ---------------------------------------------------------------------------
# Desktop bundles
# ---------------------------------------------------------------------------

def test_desktop_bundles_use_config_defaults(config: PipelineConfig) -> None:
    nw = MagicMock(spec=NwBuilder)
    nw.build_bundles.return_value = BuildResult(toolchain="nwbuild", target_id="desktop")

    Pipeline(config, desktop_builder=nw).build_desktop_bundles()

    args = nw.build_bundles.call_args.args
    assert args[0] == config.project_dir / "src"
    assert args[1] == config.desktop.platforms
    assert args[2] == config.project_dir / "dist"


def test_desktop_bundles_explicit_options(config: PipelineConfig) -> None:
    nw = MagicMock(spec=NwBuilder)
    nw.build_bundles.return_value = BuildResult(toolchain="nwbuild", target_id="desktop")

    Pipeline(config, desktop_builder=nw).build_desktop_bundles(
        source_dir=Path("/app"), platforms=[DesktopPlatform.WIN64], output_root=Path("/bundles"),
    )

    args = nw.build_bundles.call_args.args
    assert args == (Path("/app"), (DesktopPlatform.WIN64,), Path("/bundles"))


def test_desktop_builder_rejects_wrong_factory(config: PipelineConfig, monkeypatch) -> None:
    from triforge.builders import registry

    monkeypatch.setitem(registry._FACTORIES, "nwbuild", lambda cfg: FakeCargo(cfg.build_root_path))

    with pytest.raises(TypeError, match="expected NwBuilder"):
        Pipeline(config).desktop_builder


def test_desktop_failure_propagates(config: PipelineConfig) -> None:
    nw = MagicMock(spec=NwBuilder)
    nw.build_bundles.side_effect = CompilationFailed("nwbuild", 1, target_id="desktop")

    with pytest.raises(CompilationFailed):
        Pipeline(config, desktop_builder=nw).build_desktop_bundles()


# ---------------------------------------------------------------------------
# Clean
# ---------------------------------------------------------------------------

def test_clean_after_build(config: PipelineConfig, fake_cargo: FakeCargo) -> None:
    pipeline = Pipeline(config, builders={"cargo": fake_cargo})
    pipeline.build_web_targets()
    config.desktop_output_path.mkdir()

    removed = pipeline.clean()

    assert removed == [config.build_root_path, config.output_base_path, config.desktop_output_path]
    assert not config.build_root_path.exists()
    assert not config.output_base_path.exists()
    assert not config.desktop_output_path.exists()
    assert pipeline.clean() == []
