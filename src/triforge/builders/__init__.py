"""Builders for the supported toolchains (cargo web targets, nwbuild desktop bundles)."""

from .base import BuildResult, Builder, TargetBuilder
from .cargo import CargoBuilder
from .desktop import NwBuilder
from .registry import get_builder, get_target_builder, register_builder

__all__ = [
    "BuildResult",
    "Builder",
    "TargetBuilder",
    "CargoBuilder",
    "NwBuilder",
    "get_builder",
    "get_target_builder",
    "register_builder",
]
