"""Triforge – build one source unit for WebAssembly, asm.js and desktop, and stage the results"""

__version__ = "0.1.0"

from .artifacts import AmbiguityPolicy, BuildArtifact, IntermediateLocation, OutputLayout, TargetOutcome
from .clean import clean_workspace
from .config import DesktopConfig, ExampleUnit, PipelineConfig, load_config
from .errors import (
    AggregateBuildError,
    BuildError,
    CompilationFailed,
    FilesystemError,
    MissingArtifact,
    StageAmbiguous,
    ToolchainUnavailable,
)
from .pipeline import Pipeline
from .stager import ArtifactStager
from .targets import (
    ASMJS_TARGET,
    DEFAULT_DESKTOP_PLATFORMS,
    WASM_TARGET,
    ArtifactRole,
    DesktopPlatform,
    Profile,
    TargetDescriptor,
    get_target,
    list_targets,
    parse_platforms,
)

__all__ = [
    # Config
    "PipelineConfig",
    "DesktopConfig",
    "ExampleUnit",
    "load_config",
    # Targets
    "TargetDescriptor",
    "Profile",
    "ArtifactRole",
    "DesktopPlatform",
    "WASM_TARGET",
    "ASMJS_TARGET",
    "DEFAULT_DESKTOP_PLATFORMS",
    "get_target",
    "list_targets",
    "parse_platforms",
    # Artifacts & staging
    "AmbiguityPolicy",
    "BuildArtifact",
    "IntermediateLocation",
    "OutputLayout",
    "TargetOutcome",
    "ArtifactStager",
    # Pipeline
    "Pipeline",
    "clean_workspace",
    # Errors
    "BuildError",
    "ToolchainUnavailable",
    "CompilationFailed",
    "MissingArtifact",
    "StageAmbiguous",
    "FilesystemError",
    "AggregateBuildError",
    "__version__",
]
