from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO, Union

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
QUIET_FORMAT = "%(message)s"

_handler: Optional[logging.Handler] = None


def setup_logging(
    level: Union[str, int] = "WARNING",
    quiet: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Install the console handler on the root logger.

    Diagnostics go to ``stream`` (stderr by default) because ``generate``
    writes the accessor module to stdout. Calling this again replaces the
    handler it installed before and leaves other handlers alone.
    """
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    lvl = level if isinstance(level, int) else getattr(logging, level.upper(), logging.INFO)
    root.setLevel(lvl)

    _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    _handler.setLevel(lvl)
    _handler.setFormatter(logging.Formatter(QUIET_FORMAT if quiet else LOG_FORMAT))
    root.addHandler(_handler)
    return _handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
