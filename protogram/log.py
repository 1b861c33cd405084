"""
Logging through Loguru.

The package logs under the ``protogram`` name and is silent by default, so an
application embedding the engine decides what it wants to see.

Usage:
    from protogram.log import enable_logging

    enable_logging("DEBUG")   # parse start/finish, failures, grammar builds
    enable_logging("TRACE")   # plus every rule attempt (with PROTOGRAM_TRACE=true)
"""

import sys
from typing import Optional, TextIO

from loguru import logger

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.disable("protogram")

_handler_id: Optional[int] = None


def enable_logging(level: str = "DEBUG", sink: TextIO = sys.stderr) -> int:
    """
    Turn on protogram's log output.

    Args:
        level: Minimum loguru level to emit (TRACE, DEBUG, INFO, ...)
        sink: Where records go (default stderr)

    Returns:
        The loguru handler id, usable with ``logger.remove``.
    """
    global _handler_id
    if _handler_id is not None:
        logger.remove(_handler_id)
    _handler_id = logger.add(
        sink,
        format=logger_format,
        level=level,
        filter=lambda record: record["name"].startswith("protogram"),
    )
    logger.enable("protogram")
    return _handler_id


def disable_logging() -> None:
    global _handler_id
    if _handler_id is not None:
        logger.remove(_handler_id)
        _handler_id = None
    logger.disable("protogram")
