"""Pipeline orchestrating backend builds, staging and teardown."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from .artifacts import OutputLayout, TargetOutcome
from .builders.base import BuildResult, TargetBuilder
from .builders.desktop import NwBuilder
from .builders.registry import get_builder, get_target_builder
from .clean import clean_workspace
from .config import ExampleUnit, PipelineConfig
from .errors import AggregateBuildError, BuildError
from .parallel import format_parallel_results, run_parallel
from .stager import ArtifactStager, ensure_dir
from .targets import DesktopPlatform, TargetDescriptor

_logger = logging.getLogger("triforge.pipeline")


class Pipeline:
    """Builds web targets, desktop bundles and cleans the workspace for one project.

    Web targets are independent: each runs invoke then stage, and no target
    reads another's output.  Failures are collected per target and raised
    together as an AggregateBuildError once the run is over.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        builders: Optional[dict[str, TargetBuilder]] = None,
        desktop_builder: Optional[NwBuilder] = None,
        stager: Optional[ArtifactStager] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self._builders: dict[str, TargetBuilder] = dict(builders or {})
        self._desktop_builder = desktop_builder
        self.stager = stager or ArtifactStager(config.ambiguity)
        self.on_log = on_log

    @classmethod
    def from_file(cls, config_path: str | Path, **kwargs) -> "Pipeline":
        """Create a pipeline from a YAML configuration file."""
        return cls(PipelineConfig.from_yaml(Path(config_path)), **kwargs)

    def builder_for(self, target: TargetDescriptor) -> TargetBuilder:
        """Return (and cache) the backend for *target*'s toolchain family."""
        builder = self._builders.get(target.toolchain)
        if builder is None:
            try:
                builder = get_target_builder(target.toolchain, self.config)
            except ValueError as exc:
                raise BuildError(str(exc), target_id=target.id) from exc
            self._builders[target.toolchain] = builder
        return builder

    @property
    def desktop_builder(self) -> NwBuilder:
        if self._desktop_builder is None:
            builder = get_builder("nwbuild", self.config)
            if not isinstance(builder, NwBuilder):
                raise TypeError(f"nwbuild factory returned {type(builder).__name__}, expected NwBuilder")
            self._desktop_builder = builder
        return self._desktop_builder

    # ------------------------------------------------------------------
    # Web targets
    # ------------------------------------------------------------------

    def build_target(self, unit: ExampleUnit, target: TargetDescriptor, output_root: Path) -> TargetOutcome:
        """Invoke the backend for one target and stage its artifacts."""
        t0 = time.monotonic()
        _logger.info("[pipeline] Building %s for %s (%s)", unit.name, target.id, target.toolchain_triple)

        result = self.builder_for(target).invoke(unit, target, on_log=self.on_log)
        if result.location is None:
            raise BuildError(f"{target.toolchain} reported no output location", target_id=target.id)

        artifacts = self.stager.stage(result.location, unit, target, output_root)
        return TargetOutcome(
            target_id=target.id,
            success=True,
            artifacts=artifacts,
            elapsed_seconds=time.monotonic() - t0,
        )

    def build_web_targets(
        self,
        unit: Optional[ExampleUnit] = None,
        targets: Optional[Sequence[TargetDescriptor]] = None,
        *,
        fail_fast: Optional[bool] = None,
        parallel: Optional[bool] = None,
    ) -> OutputLayout:
        """Build and stage every target into ``out/<profile>``.

        With ``fail_fast`` the run stops at the first failing target and the
        rest are reported as skipped.  ``parallel`` runs all targets at once
        and always collects every failure.  Files staged by targets that
        succeeded stay in place either way.
        """
        unit = unit or self.config.unit
        targets = list(targets if targets is not None else self.config.targets)
        fail_fast = self.config.fail_fast if fail_fast is None else fail_fast
        parallel = self.config.parallel if parallel is None else parallel

        output_root = self.config.output_root
        layout = OutputLayout(root=output_root)
        errors: dict[str, BuildError] = {}
        skipped: list[str] = []

        ensure_dir(output_root)

        if self.config.assets:
            try:
                self.stager.copy_assets(self.config.project_dir, self.config.assets, output_root)
            except BuildError as exc:
                errors["assets"] = exc
                if fail_fast:
                    raise AggregateBuildError(errors, skipped=[t.id for t in targets], layout=layout) from exc

        if parallel and len(targets) > 1:
            tasks = {t.id: (lambda t=t: self.build_target(unit, t, output_root)) for t in targets}
            results = run_parallel(tasks, max_workers=self.config.max_workers)
            _logger.debug("[pipeline] %s", format_parallel_results(results))
            for target in targets:
                res = results[target.id]
                if res.success:
                    outcome = res.result
                else:
                    exc = res.exception
                    if not isinstance(exc, BuildError):
                        raise exc  # type: ignore[misc]
                    if exc.target_id is None:
                        exc.target_id = target.id
                    _logger.error("[pipeline] %s failed: %s", target.id, exc)
                    errors[target.id] = exc
                    outcome = TargetOutcome(target.id, False, error=exc, elapsed_seconds=res.duration)
                layout.outcomes[target.id] = outcome
                layout.add(outcome.artifacts)
        else:
            for i, target in enumerate(targets):
                try:
                    outcome = self.build_target(unit, target, output_root)
                except BuildError as exc:
                    if exc.target_id is None:
                        exc.target_id = target.id
                    _logger.error("[pipeline] %s failed: %s", target.id, exc)
                    errors[target.id] = exc
                    layout.outcomes[target.id] = TargetOutcome(target.id, False, error=exc)
                    if fail_fast:
                        skipped = [t.id for t in targets[i + 1:]]
                        for t_id in skipped:
                            layout.outcomes[t_id] = TargetOutcome(t_id, False, skipped=True)
                        break
                    continue
                layout.outcomes[target.id] = outcome
                layout.add(outcome.artifacts)

        if errors:
            raise AggregateBuildError(errors, skipped=skipped, layout=layout)

        _logger.info("[pipeline] Staged %d file(s) into %s", len(layout.files), output_root)
        return layout

    # ------------------------------------------------------------------
    # Desktop bundles
    # ------------------------------------------------------------------

    def build_desktop_bundles(
        self,
        source_dir: Optional[Path] = None,
        platforms: Optional[Iterable[DesktopPlatform]] = None,
        output_root: Optional[Path] = None,
    ) -> BuildResult:
        """Hand the desktop source tree to the external bundler."""
        source_dir = source_dir or self.config.desktop_source_path
        output_root = output_root or self.config.desktop_output_path
        selected = tuple(platforms) if platforms else self.config.desktop.platforms
        return self.desktop_builder.build_bundles(source_dir, selected, output_root, on_log=self.on_log)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clean_paths(self) -> list[Path]:
        return [
            self.config.build_root_path,
            self.config.output_base_path,
            self.config.desktop_output_path,
        ]

    def clean(self) -> list[Path]:
        """Remove the build tree, ``out/`` and the desktop bundle directory."""
        return clean_workspace(self.clean_paths(), project_dir=self.config.project_dir)
