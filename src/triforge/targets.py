"""Target definitions for triforge builds.

A build unit can be compiled for several targets:
- wasm: WebAssembly module plus its JavaScript loader (modern engines)
- asmjs: asm.js script (fallback for engines without WebAssembly)
- desktop: native bundles produced by an external webview bundler
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Union


class Profile(str, Enum):
    """Build configuration tier; selects compiler flags and output root."""

    DEBUG = "debug"
    RELEASE = "release"


class ArtifactRole(str, Enum):
    """Logical role of a produced file."""

    BINARY = "binary"
    LOADER = "loader-script"


LOADER_EXTENSIONS = frozenset({".js"})


class DesktopPlatform(str, Enum):
    """OS/architecture pairs understood by the desktop bundler."""

    WIN32 = "win32"
    WIN64 = "win64"
    OSX64 = "osx64"
    LINUX32 = "linux32"
    LINUX64 = "linux64"

    @property
    def os(self) -> str:
        return {"win": "windows", "osx": "macos", "lin": "linux"}[self.value[:3]]

    @property
    def arch(self) -> str:
        return "x86" if self.value.endswith("32") else "x64"


DEFAULT_DESKTOP_PLATFORMS: tuple[DesktopPlatform, ...] = (
    DesktopPlatform.WIN32,
    DesktopPlatform.WIN64,
    DesktopPlatform.OSX64,
    DesktopPlatform.LINUX32,
    DesktopPlatform.LINUX64,
)


# ---------------------------------------------------------------------------
# TargetDescriptor – one compilation backend
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TargetDescriptor:
    """Identifies a compilation backend and the files it is expected to emit."""

    id: str
    toolchain_triple: str
    output_extensions: tuple[str, ...]
    build_mode: Optional[Profile] = None  # None follows the pipeline profile
    name_infix: str = ""  # e.g. ".asm" so asm.js's loader does not clash with wasm's
    toolchain: str = "cargo"
    description: str = ""

    def role_for(self, extension: str) -> ArtifactRole:
        if extension in LOADER_EXTENSIONS:
            return ArtifactRole.LOADER
        return ArtifactRole.BINARY

    def canonical_name(self, unit_name: str, extension: str) -> str:
        """Staged filename for *extension*, e.g. ``todo_mvc.asm.js``."""
        return f"{unit_name}{self.name_infix}{extension}"

    @classmethod
    def from_dict(cls, data: dict) -> "TargetDescriptor":
        """Create a TargetDescriptor from a config mapping."""
        raw_exts = data.get("output_extensions", data.get("extensions", []))
        if isinstance(raw_exts, str):
            raw_exts = [e.strip() for e in raw_exts.split(",") if e.strip()]
        extensions = tuple(e if e.startswith(".") else f".{e}" for e in (str(x).strip() for x in raw_exts))
        if not extensions:
            raise ValueError(f"Target '{data.get('id')}' declares no output extensions")

        target_id = str(data.get("id", "")).strip()
        triple = str(data.get("toolchain_triple", data.get("triple", ""))).strip()
        if not target_id or not triple:
            raise ValueError("Target definitions need both 'id' and 'toolchain_triple'")

        return cls(
            id=target_id,
            toolchain_triple=triple,
            output_extensions=extensions,
            build_mode=Profile(str(data["build_mode"]).strip().lower()) if data.get("build_mode") else None,
            name_infix=str(data.get("name_infix", "")),
            toolchain=str(data.get("toolchain", "cargo")).strip().lower(),
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "toolchain_triple": self.toolchain_triple,
            "output_extensions": list(self.output_extensions),
            "name_infix": self.name_infix,
            "toolchain": self.toolchain,
        }
        if self.build_mode is not None:
            data["build_mode"] = self.build_mode.value
        return data


WASM_TARGET = TargetDescriptor(
    id="wasm",
    toolchain_triple="wasm32-unknown-emscripten",
    output_extensions=(".wasm", ".js"),
    description="WebAssembly module with JavaScript loader",
)

ASMJS_TARGET = TargetDescriptor(
    id="asmjs",
    toolchain_triple="asmjs-unknown-emscripten",
    output_extensions=(".js",),
    name_infix=".asm",
    description="asm.js fallback for engines without WebAssembly",
)

TARGET_REGISTRY: dict[str, TargetDescriptor] = {
    WASM_TARGET.id: WASM_TARGET,
    ASMJS_TARGET.id: ASMJS_TARGET,
}

DEFAULT_WEB_TARGETS: tuple[str, ...] = (WASM_TARGET.id, ASMJS_TARGET.id)


def get_target(target_id: str) -> TargetDescriptor:
    """Look up a built-in target descriptor by id (case-insensitive)."""
    key = (target_id or "").strip().lower()
    target = TARGET_REGISTRY.get(key)
    if target is None:
        known = ", ".join(sorted(TARGET_REGISTRY))
        raise ValueError(f"Unknown target '{target_id}' (known: {known})")
    return target


def list_targets() -> list[TargetDescriptor]:
    """List all built-in target descriptors in registration order."""
    return list(TARGET_REGISTRY.values())


def parse_platforms(value: Optional[Union[str, Iterable[str]]]) -> tuple[DesktopPlatform, ...]:
    """Parse ``"win32,linux64"`` or a list of names into desktop platforms.

    ``None`` or an empty value yields the default platform set.  Order is
    preserved and duplicates are dropped.
    """
    if value is None:
        return DEFAULT_DESKTOP_PLATFORMS
    if isinstance(value, str):
        raw = [p.strip() for p in value.split(",")]
    else:
        raw = [str(p).strip() for p in value]
    raw = [p.lower() for p in raw if p]
    if not raw:
        return DEFAULT_DESKTOP_PLATFORMS

    platforms: list[DesktopPlatform] = []
    for name in raw:
        try:
            platform = DesktopPlatform(name)
        except ValueError:
            known = ", ".join(p.value for p in DesktopPlatform)
            raise ValueError(f"Unknown desktop platform '{name}' (known: {known})") from None
        if platform not in platforms:
            platforms.append(platform)
    return tuple(platforms)
