#!/usr/bin/env python3
"""
TodoMVC Demo - builds the todo_mvc example for WebAssembly and asm.js.

Run it from the root of a cargo project that has ``examples/todo_mvc.rs``
and ``html/index.html``:

    python demo.py [--desktop]

Needs ``cargo`` with the emscripten targets installed, and ``nwbuild`` for
the desktop bundles.
"""
import sys
from pathlib import Path

# Add triforge to path if running from source
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from triforge import AggregateBuildError, BuildError, Pipeline, PipelineConfig
from triforge.log_config import setup_logging


def main() -> int:
    setup_logging("INFO")

    config = PipelineConfig.from_yaml(Path(__file__).parent / "triforge.yaml")
    config.project_dir = Path.cwd()
    pipeline = Pipeline(config, on_log=print)

    print(f"Building {config.unit.name} into {config.output_root}")
    try:
        layout = pipeline.build_web_targets()
    except AggregateBuildError as e:
        for target_id, err in e.errors.items():
            print(f"  ✗ {target_id}: {err}")
        return 1

    for name in sorted(layout.files):
        print(f"  ✓ {name}")

    if "--desktop" in sys.argv:
        try:
            result = pipeline.build_desktop_bundles()
        except BuildError as e:
            print(f"  ✗ desktop: {e}")
            return 1
        print(f"  ✓ {result.message}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
