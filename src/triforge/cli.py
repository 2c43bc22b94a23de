"""CLI for triforge multi-target builds."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .artifacts import OutputLayout
from .config import DEFAULT_CONFIG_NAME, ExampleUnit, PipelineConfig, load_config
from .errors import AggregateBuildError, BuildError, CompilationFailed, FilesystemError
from .log_config import setup_logging
from .pipeline import Pipeline
from .targets import DesktopPlatform, Profile, list_targets, parse_platforms


console = Console()


def _load(config_path: Optional[str], project_dir: Optional[str]) -> PipelineConfig:
    return load_config(config_path, project_dir=Path(project_dir) if project_dir else None)


def _print_layout(layout: OutputLayout) -> None:
    table = Table(title=f"Staged into {layout.root}")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Files")
    for target_id, outcome in layout.outcomes.items():
        if outcome.success:
            status = "[green]✓ ok[/green]"
        elif outcome.skipped:
            status = "[yellow]– skipped[/yellow]"
        else:
            status = "[red]✗ failed[/red]"
        files = ", ".join(a.staged_path.name for a in outcome.artifacts if a.staged_path)
        table.add_row(target_id, status, files)
    console.print(table)


def _print_failures(error: AggregateBuildError) -> None:
    for target_id, exc in error.errors.items():
        console.print(f"[red]✗ {target_id}: {escape(str(exc))}[/red]")
        if isinstance(exc, CompilationFailed):
            console.print(f"[dim]{escape(exc.output_tail())}[/dim]")
    for target_id in error.skipped:
        console.print(f"[yellow]– {target_id}: skipped[/yellow]")


@click.group()
@click.version_option(version=__version__, prog_name="triforge")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose: int):
    """Triforge – WebAssembly, asm.js and desktop builds from one source unit."""
    setup_logging({0: "WARNING", 1: "INFO"}.get(verbose, "DEBUG"))


@cli.command("build-example")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
@click.option("--project-dir", "-C", type=click.Path(exists=True, file_okay=False), help="Project directory")
@click.option("--example", "-e", help="Build unit name (overrides config)")
@click.option("--profile", type=click.Choice([p.value for p in Profile]), help="Build profile")
@click.option("--target", "-t", "target_ids", multiple=True, help="Target id (repeatable)")
@click.option("--fail-fast/--fail-soft", default=None, help="Stop at the first failing target")
@click.option("--parallel/--sequential", "-p/-s", default=None, help="Build targets concurrently")
@click.option("--workers", "-w", type=int, help="Max parallel workers")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
def build_example(
    config_path: Optional[str],
    project_dir: Optional[str],
    example: Optional[str],
    profile: Optional[str],
    target_ids: tuple[str, ...],
    fail_fast: Optional[bool],
    parallel: Optional[bool],
    workers: Optional[int],
    quiet: bool,
):
    """Build the example for every web target and stage it into out/<profile>/."""
    try:
        config = _load(config_path, project_dir)
        if example:
            config.unit = ExampleUnit.from_dict({"name": example, "kind": config.unit.kind})
        if profile:
            config.profile = Profile(profile)
        if workers:
            config.max_workers = workers
        targets = [config.target(t) for t in target_ids] if target_ids else None

        on_log = None if quiet else (lambda line: console.print(line, markup=False, highlight=False))
        pipeline = Pipeline(config, on_log=on_log)
        layout = pipeline.build_web_targets(targets=targets, fail_fast=fail_fast, parallel=parallel)
    except AggregateBuildError as e:
        if e.layout is not None and not quiet:
            _print_layout(e.layout)
        _print_failures(e)
        sys.exit(1)
    except (BuildError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if not quiet:
        _print_layout(layout)
    console.print(f"[green]✓ {len(layout.files)} file(s) staged in {layout.root}[/green]")


@cli.command("build-desktop-bundles")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
@click.option("--project-dir", "-C", type=click.Path(exists=True, file_okay=False), help="Project directory")
@click.option("--source-dir", "-s", type=click.Path(), help="Application directory to bundle")
@click.option("--output-dir", "-o", type=click.Path(), help="Bundle output directory (default: dist/)")
@click.option("--platforms", help="Comma-separated platforms, e.g. win64,linux64")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
def build_desktop_bundles(
    config_path: Optional[str],
    project_dir: Optional[str],
    source_dir: Optional[str],
    output_dir: Optional[str],
    platforms: Optional[str],
    quiet: bool,
):
    """Package the desktop app for every configured platform."""
    try:
        config = _load(config_path, project_dir)
        on_log = None if quiet else (lambda line: console.print(line, markup=False, highlight=False))
        pipeline = Pipeline(config, on_log=on_log)
        result = pipeline.build_desktop_bundles(
            source_dir=config.resolve(source_dir) if source_dir else None,
            platforms=parse_platforms(platforms) if platforms else None,
            output_root=config.resolve(output_dir) if output_dir else None,
        )
    except CompilationFailed as e:
        console.print(f"[red]✗ Desktop bundling failed: {escape(str(e))}[/red]")
        console.print(f"[dim]{escape(e.output_tail())}[/dim]")
        sys.exit(1)
    except (BuildError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ {result.message} → {result.output_dir}[/green]")


@cli.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
@click.option("--project-dir", "-C", type=click.Path(exists=True, file_okay=False), help="Project directory")
def clean(config_path: Optional[str], project_dir: Optional[str]):
    """Remove the build tree, out/ and the desktop bundle directory."""
    try:
        config = _load(config_path, project_dir)
        removed = Pipeline(config).clean()
    except (FilesystemError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if removed:
        for path in removed:
            console.print(f"  [green]✓[/green] removed {path}")
    else:
        console.print("[dim]Nothing to clean[/dim]")


@cli.command()
def targets():
    """List the built-in web targets and desktop platforms."""
    table = Table(title="Web targets")
    table.add_column("Id")
    table.add_column("Triple")
    table.add_column("Extensions")
    table.add_column("Staged as")
    for t in list_targets():
        staged = ", ".join(t.canonical_name("<unit>", ext) for ext in t.output_extensions)
        table.add_row(t.id, t.toolchain_triple, " ".join(t.output_extensions), staged)
    console.print(table)
    console.print("Desktop platforms: " + ", ".join(p.value for p in DesktopPlatform))


@cli.command()
@click.option("--example", "-e", default="todo_mvc", help="Build unit name")
@click.option("--output", "-o", default=DEFAULT_CONFIG_NAME, help="Output file")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def init(example: str, output: str, force: bool):
    """Write a starter triforge configuration."""
    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[red]{output_path} already exists (use --force to overwrite)[/red]")
        sys.exit(1)

    config = PipelineConfig.from_dict({
        "name": example,
        "unit": {"name": example},
        "assets": ["html/index.html"],
    }, base_path=output_path.parent)
    config.to_yaml(output_path)

    console.print(f"[green]Created {output_path}[/green]")
    console.print("\nNext steps:")
    console.print("  1. Run: triforge build-example")
    console.print("  2. Serve out/release/ with any static file server")


def main(argv=None):
    """Main entry point."""
    cli(argv)


if __name__ == "__main__":
    main()
