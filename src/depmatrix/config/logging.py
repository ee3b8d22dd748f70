"""Shared logging helpers for depmatrix."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse format suitable for CLI output.

    Pass ``force=True`` to reconfigure during tests or when the CLI switches to
    ``--verbose``.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # SQL echo and HTTP wire logs stay quiet unless explicitly asked for
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
