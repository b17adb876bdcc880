"""
Timers that can be waited on with ``select()``, alongside any other I/O.
"""

from __future__ import annotations

# Set default logging handler to avoid "No handler found" warnings.
import logging
import typing
import warnings
from logging import NullHandler

from . import exceptions
from ._version import __version__
from .sources import (
    PipeSource,
    ReadinessSource,
    SocketPairSource,
    TempFileSource,
    default_source,
    get_source,
)
from .timer import Timer, TimerState
from .util.repeat import UNCHANGED, Repeat
from .util.wait import wait_for_read

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "PipeSource",
    "ReadinessSource",
    "Repeat",
    "SocketPairSource",
    "TempFileSource",
    "Timer",
    "TimerState",
    "UNCHANGED",
    "add_stderr_logger",
    "default_source",
    "disable_warnings",
    "get_source",
    "wait_for_read",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(
    level: int = logging.DEBUG,
) -> logging.StreamHandler[typing.TextIO]:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if fdtimer is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler


# All warning filters *must* be appended unless you're really certain that they
# shouldn't be: otherwise, it's very hard for users to use most Python
# mechanisms to silence them.
# Leaked timers should be reported every time.
warnings.simplefilter("always", exceptions.ResourceLeakWarning, append=True)


def disable_warnings(category: type[Warning] = exceptions.TimerWarning) -> None:
    """
    Helper for quickly disabling all fdtimer warnings.
    """
    warnings.simplefilter("ignore", category)
