from __future__ import annotations

import functools
import os
import platform
import time
import typing
import warnings

import pytest

from fdtimer.exceptions import TimerWarning

_TYPE_TEST = typing.TypeVar("_TYPE_TEST", bound=typing.Callable[..., typing.Any])

# We use delays in two different ways in our tests
#
# 1. SHORT_DELAY to arm timers that should expire quickly, without making the
#    suite crawl.
# 2. LONG_TIMEOUT when waiting for an expiry that should happen, to make sure
#    the test does not hang even if it does not. Helper interpreters are slow
#    to start on CI, hence the generous value.
SHORT_DELAY = 0.2
LONG_TIMEOUT = 10.0
if os.environ.get("CI") or os.environ.get("GITHUB_ACTIONS") == "true":
    LONG_TIMEOUT = 30.0

# Sources whose handle only becomes select()-readable once the delay elapsed.
# Regular files are always readable on POSIX, so the temporary file source is
# left out.
POLLABLE_SOURCES = ["pipe", "socketpair"]
if platform.system() == "Windows":
    POLLABLE_SOURCES = ["socketpair"]


def notWindows(test: _TYPE_TEST) -> _TYPE_TEST:
    """Skips this test on Windows"""

    @functools.wraps(test)
    def wrapper(*args: typing.Any, **kwargs: typing.Any) -> typing.Any:
        msg = f"{test.__name__} does not run on Windows"
        if platform.system() == "Windows":
            pytest.skip(msg)
        return test(*args, **kwargs)

    return typing.cast(_TYPE_TEST, wrapper)


def read_when_written(handle: typing.Any, timeout: float = LONG_TIMEOUT) -> bytes:
    """Read from a temporary file handle until the helper wrote to it."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data: bytes = handle.read()
        if data:
            return data
        time.sleep(0.05)
    return b""


def clear_warnings(cls: type[Warning] = TimerWarning) -> None:
    new_filters = []
    for f in warnings.filters:
        if issubclass(f[2], cls):
            continue
        new_filters.append(f)
    warnings.filters[:] = new_filters
