"""Logging setup for scripts that drive the renderer.

The library only creates module loggers; handlers and levels are the
application's business. Scripts call configure_logging() once at startup.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s.%(msecs)03d %(levelname)-5s %(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Handler added by the last configure_logging() call
_installed_handler: logging.Handler | None = None


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Install a stream handler with millisecond timestamps on the vexray logger.

    Calling it again replaces the handler rather than adding a second one.

    Args:
        level: Logging level for the vexray logger hierarchy.

    Returns:
        The configured "vexray" logger.
    """
    global _installed_handler

    root = logging.getLogger("vexray")
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)

    _installed_handler = logging.StreamHandler()
    _installed_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(_installed_handler)
    root.setLevel(level)
    return root
