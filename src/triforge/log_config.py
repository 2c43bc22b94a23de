"""
Centralized logging configuration for triforge.

Usage at the entry point (cli.py):

    from triforge.log_config import setup_logging
    setup_logging("DEBUG")

Library modules only call ``logging.getLogger("triforge.<area>")`` and never
configure handlers themselves.  Records are rendered by rich on stderr so
they interleave cleanly with the CLI's own console output.
"""

from __future__ import annotations

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s: %(message)s"

_initialized = False


def setup_logging(level: Union[str, int] = "WARNING", *, force: bool = False) -> None:
    """Attach a rich stderr handler to the ``triforge`` logger tree.

    Call once from each entry point.  Repeated calls only adjust the level
    unless *force* is set.
    """
    global _initialized

    root = logging.getLogger("triforge")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)

    if _initialized and not force:
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)

    # markup stays off: compiler output is full of [brackets]
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    _initialized = True
