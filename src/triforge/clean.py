"""Workspace teardown: remove build trees and staged output."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from .errors import FilesystemError

_logger = logging.getLogger("triforge.clean")


def clean_workspace(paths: Iterable[Path], *, project_dir: Optional[Path] = None) -> list[Path]:
    """Recursively delete every path in *paths*; return those that existed.

    Missing paths are skipped, so calling this twice in a row is harmless.
    When *project_dir* is given, paths equal to it or above it are refused.
    """
    guard = project_dir.resolve() if project_dir is not None else None
    removed: list[Path] = []

    for path in paths:
        resolved = path.resolve()
        if guard is not None and (resolved == guard or resolved in guard.parents):
            raise FilesystemError(
                "remove", path, PermissionError(f"refusing to delete project directory or its parent: {resolved}"),
            )

        if not path.exists() and not path.is_symlink():
            _logger.debug("[clean] %s already absent", path)
            continue

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise FilesystemError("remove", path, exc) from exc

        _logger.info("[clean] removed %s", path)
        removed.append(path)

    return removed
