"""Builder registry – resolve the right backend for a target's toolchain."""

from __future__ import annotations

from typing import Callable

from ..config import PipelineConfig
from .base import Builder, TargetBuilder
from .cargo import CargoBuilder
from .desktop import NwBuilder

_FACTORIES: dict[str, Callable[[PipelineConfig], Builder]] = {
    "cargo": lambda cfg: CargoBuilder(
        project_dir=cfg.project_dir,
        build_root=cfg.build_root_path,
        profile=cfg.profile,
        command=cfg.cargo,
        timeout=cfg.timeout,
    ),
    "nwbuild": lambda cfg: NwBuilder(
        command=cfg.desktop.command,
        cwd=cfg.project_dir,
        timeout=cfg.timeout,
    ),
}


def register_builder(toolchain: str, factory: Callable[[PipelineConfig], Builder]) -> None:
    """Register (or replace) the factory used for *toolchain*."""
    _FACTORIES[toolchain.strip().lower()] = factory


def get_builder(toolchain: str, config: PipelineConfig) -> Builder:
    """Return a builder instance for the given toolchain family."""
    factory = _FACTORIES.get((toolchain or "").strip().lower())
    if factory is None:
        raise ValueError(f"No builder registered for toolchain: {toolchain}")
    return factory(config)


def get_target_builder(toolchain: str, config: PipelineConfig) -> TargetBuilder:
    """Like :func:`get_builder` but only for backends that build web targets."""
    builder = get_builder(toolchain, config)
    if not isinstance(builder, TargetBuilder):
        raise ValueError(f"Toolchain '{toolchain}' cannot build web targets")
    return builder
