"""Logging helpers built on top of Rich."""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from diagenum.settings import get_settings


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Attach a RichHandler on stderr to the package logger."""

    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger("diagenum")
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_time=False,
                show_path=False,
            )
        )
    return logger


__all__ = ["configure_logging"]
