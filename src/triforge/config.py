"""Configuration models for triforge builds."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from .artifacts import AmbiguityPolicy
from .targets import (
    DEFAULT_DESKTOP_PLATFORMS,
    DEFAULT_WEB_TARGETS,
    TARGET_REGISTRY,
    DesktopPlatform,
    Profile,
    TargetDescriptor,
    get_target,
    parse_platforms,
)

DEFAULT_CONFIG_NAME = "triforge.yaml"


@dataclass(frozen=True)
class ExampleUnit:
    """The compiled unit: cargo build selector and stem of every staged file."""
    name: str
    source_entry_point: str = ""
    kind: str = "example"  # example | bin

    def __post_init__(self) -> None:
        if not self.name or "/" in self.name or "\\" in self.name:
            raise ValueError(f"Invalid unit name: {self.name!r}")
        if self.kind not in ("example", "bin"):
            raise ValueError(f"Unit kind must be 'example' or 'bin', got {self.kind!r}")

    @classmethod
    def from_dict(cls, data: Union[dict, str]) -> "ExampleUnit":
        if isinstance(data, str):
            return cls(name=data, source_entry_point=f"examples/{data}.rs")
        name = str(data.get("name", "")).strip()
        kind = str(data.get("kind", "example")).strip().lower()
        default_src = f"examples/{name}.rs" if kind == "example" else "src/main.rs"
        return cls(
            name=name,
            source_entry_point=data.get("source", data.get("source_entry_point", default_src)),
            kind=kind,
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "source": self.source_entry_point, "kind": self.kind}


@dataclass
class DesktopConfig:
    """Configuration for the external desktop bundler."""
    source_dir: str = "src"
    output_dir: str = "dist"
    platforms: tuple[DesktopPlatform, ...] = DEFAULT_DESKTOP_PLATFORMS
    command: str = "nwbuild"

    @classmethod
    def from_dict(cls, data: dict) -> "DesktopConfig":
        return cls(
            source_dir=data.get("source_dir", "src"),
            output_dir=data.get("output_dir", "dist"),
            platforms=parse_platforms(data.get("platforms")),
            command=data.get("command", "nwbuild"),
        )

    def to_dict(self) -> dict:
        return {
            "source_dir": self.source_dir,
            "output_dir": self.output_dir,
            "platforms": [p.value for p in self.platforms],
            "command": self.command,
        }


@dataclass
class PipelineConfig:
    """Configuration for a complete triforge project."""
    unit: ExampleUnit = field(default_factory=lambda: ExampleUnit("todo_mvc", "examples/todo_mvc.rs"))
    name: str = ""
    project_dir: Path = field(default_factory=Path.cwd)
    profile: Profile = Profile.RELEASE
    build_root: str = "target"
    output_base: str = "out"
    targets: list[TargetDescriptor] = field(
        default_factory=lambda: [get_target(t) for t in DEFAULT_WEB_TARGETS]
    )
    assets: list[str] = field(default_factory=list)
    fail_fast: bool = False
    parallel: bool = False
    max_workers: int = 2
    ambiguity: AmbiguityPolicy = AmbiguityPolicy.FIRST
    timeout: int = 1800
    cargo: str = "cargo"
    desktop: DesktopConfig = field(default_factory=DesktopConfig)

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve *path* against the project directory."""
        p = Path(path)
        return p if p.is_absolute() else self.project_dir / p

    @property
    def build_root_path(self) -> Path:
        return self.resolve(self.build_root)

    @property
    def output_base_path(self) -> Path:
        return self.resolve(self.output_base)

    @property
    def output_root(self) -> Path:
        """``out/<profile>`` – where staged web artifacts land."""
        return self.output_base_path / self.profile.value

    @property
    def desktop_output_path(self) -> Path:
        return self.resolve(self.desktop.output_dir)

    @property
    def desktop_source_path(self) -> Path:
        return self.resolve(self.desktop.source_dir)

    def target(self, target_id: str) -> TargetDescriptor:
        """Return a configured target by id, falling back to the built-ins."""
        for t in self.targets:
            if t.id == target_id:
                return t
        return get_target(target_id)

    @classmethod
    def from_yaml(cls, path: Path) -> "PipelineConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return cls.from_dict(data, base_path=path.parent)

    @classmethod
    def from_dict(cls, data: dict, base_path: Optional[Path] = None) -> "PipelineConfig":
        """Create configuration from dictionary."""
        targets = []
        for entry in data.get("targets", list(DEFAULT_WEB_TARGETS)):
            if isinstance(entry, dict):
                targets.append(TargetDescriptor.from_dict(entry))
            else:
                targets.append(get_target(str(entry)))

        unit_data = data.get("unit", "todo_mvc")

        return cls(
            unit=ExampleUnit.from_dict(unit_data),
            name=data.get("name", ""),
            project_dir=(base_path or Path.cwd()).resolve(),
            profile=Profile(str(data.get("profile", "release")).strip().lower()),
            build_root=data.get("build_root", "target"),
            output_base=data.get("output_base", "out"),
            targets=targets,
            assets=list(data.get("assets", [])),
            fail_fast=bool(data.get("fail_fast", False)),
            parallel=bool(data.get("parallel", False)),
            max_workers=int(data.get("max_workers", 2)),
            ambiguity=AmbiguityPolicy(str(data.get("ambiguity", "first")).strip().lower()),
            timeout=int(data.get("timeout", 1800)),
            cargo=data.get("cargo", "cargo"),
            desktop=DesktopConfig.from_dict(data.get("desktop", {})),
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "name": self.name,
            "unit": self.unit.to_dict(),
            "profile": self.profile.value,
            "build_root": self.build_root,
            "output_base": self.output_base,
            "targets": [
                t.id if TARGET_REGISTRY.get(t.id) == t else t.to_dict()
                for t in self.targets
            ],
            "assets": list(self.assets),
            "fail_fast": self.fail_fast,
            "parallel": self.parallel,
            "max_workers": self.max_workers,
            "ambiguity": self.ambiguity.value,
            "timeout": self.timeout,
            "cargo": self.cargo,
            "desktop": self.desktop.to_dict(),
        }

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(path: Union[str, Path, None] = None, *, project_dir: Optional[Path] = None) -> PipelineConfig:
    """Load configuration from *path*.

    Without an explicit path, ``triforge.yaml`` in *project_dir* (or the
    current directory) is used when present, otherwise defaults apply.
    """
    if path is None:
        base = (project_dir or Path.cwd()).resolve()
        candidate = base / DEFAULT_CONFIG_NAME
        if candidate.exists():
            return PipelineConfig.from_yaml(candidate)
        return PipelineConfig(project_dir=base)

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return PipelineConfig.from_yaml(path)
