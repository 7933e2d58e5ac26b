"""
Logging setup for the procsched command line.

Library modules only create ``logging.getLogger(__name__)`` loggers and
never attach handlers; the CLI calls ``setup_logging`` once at startup to
route everything under the ``procsched`` namespace through Rich.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def setup_logging(level: str = "WARNING", console: Optional[Console] = None) -> None:
    """
    Attach a RichHandler to the ``procsched`` logger.

    Safe to call more than once; later calls only change the level.

    :param level: Level name such as "DEBUG" or "INFO", case-insensitive.
    :param console: Console to write to. Defaults to stderr so log lines
                    never mix with the tables printed on stdout.
    """
    global _CONFIGURED
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    root = logging.getLogger("procsched")
    root.setLevel(numeric)
    if _CONFIGURED:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.propagate = False
    _CONFIGURED = True
