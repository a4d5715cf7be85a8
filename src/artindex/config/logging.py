"""Shared logging helpers for artindex."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with CLI-friendly defaults.

    Pass ``force=True`` to reconfigure during tests or when switching verbosity
    from the command line.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; page loops would drown the pipeline output
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
