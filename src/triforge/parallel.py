"""Parallel execution utilities for triforge."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

console = Console(stderr=True)


@dataclass
class TaskResult:
    """Result of a parallel task."""
    name: str
    success: bool
    duration: float
    result: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None


def _collect(future: Future, name: str, started: float) -> TaskResult:
    duration = time.monotonic() - started
    try:
        return TaskResult(name=name, success=True, duration=duration, result=future.result())
    except Exception as e:
        return TaskResult(name=name, success=False, duration=duration, error=str(e), exception=e)


def run_parallel(
    tasks: dict[str, Callable[[], Any]],
    max_workers: int = 4,
    show_progress: bool = False,
    description: str = "Building targets",
) -> dict[str, TaskResult]:
    """
    Run multiple tasks in parallel using ThreadPoolExecutor.

    Args:
        tasks: Dict of {name: callable} to run
        max_workers: Maximum parallel workers
        show_progress: Show a rich progress bar on stderr
        description: Progress description

    Returns:
        Dict of {name: TaskResult} in the order the tasks were given
    """
    results: dict[str, TaskResult] = {}

    if not tasks:
        return results

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(tasks)))) as executor:
        futures = {}
        start_times = {}

        for name, func in tasks.items():
            start_times[name] = time.monotonic()
            futures[executor.submit(func)] = name

        if show_progress:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task(description, total=len(tasks))
                for future in as_completed(futures):
                    name = futures[future]
                    results[name] = _collect(future, name, start_times[name])
                    progress.advance(task)
        else:
            for future in as_completed(futures):
                name = futures[future]
                results[name] = _collect(future, name, start_times[name])

    return {name: results[name] for name in tasks}


def format_parallel_results(results: dict[str, TaskResult]) -> str:
    """Format parallel execution results for display."""
    lines = []
    total_time = sum(r.duration for r in results.values())

    successful = [r for r in results.values() if r.success]
    failed = [r for r in results.values() if not r.success]

    lines.append(f"Completed: {len(successful)}/{len(results)} tasks")
    lines.append(f"Total time: {total_time:.2f}s")

    if failed:
        lines.append("\nFailed:")
        for r in failed:
            lines.append(f"  ✗ {r.name}: {r.error}")

    return "\n".join(lines)
