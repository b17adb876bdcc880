from __future__ import annotations

import select
import typing

__all__ = ["wait_for_read", "wait_for_write"]


class _HasFileno(typing.Protocol):
    def fileno(self) -> int:
        ...


_TYPE_WAITABLE = typing.Union[_HasFileno, int]


# How should we wait on handles?
#
# There are two types of APIs you can use for waiting on file descriptors:
#
# - fd_set based APIs: select, pselect
# - "poll"-style APIs: poll, epoll, kqueue, ...
#
# select() can only handle file descriptors below FD_SETSIZE (usually 1024),
# so a process juggling many timers is better off with poll(). poll() is
# missing on Windows and broken on some versions of macOS, so we probe it once
# and fall back to select() when it cannot be trusted.
#
# Regular files are always reported as readable by both APIs on POSIX.


def _fileno(obj: _TYPE_WAITABLE) -> int:
    if isinstance(obj, int):
        return obj
    return obj.fileno()


def select_wait_for_handle(
    obj: _TYPE_WAITABLE,
    read: bool = False,
    write: bool = False,
    timeout: float | None = None,
) -> bool:
    if not read and not write:
        raise RuntimeError("must specify at least one of read=True, write=True")
    fd = _fileno(obj)
    rcheck = []
    wcheck = []
    if read:
        rcheck.append(fd)
    if write:
        wcheck.append(fd)
    rready, wready, _ = select.select(rcheck, wcheck, [], timeout)
    return bool(rready or wready)


def poll_wait_for_handle(
    obj: _TYPE_WAITABLE,
    read: bool = False,
    write: bool = False,
    timeout: float | None = None,
) -> bool:
    if not read and not write:
        raise RuntimeError("must specify at least one of read=True, write=True")
    mask = 0
    if read:
        mask |= select.POLLIN
    if write:
        mask |= select.POLLOUT
    poll_obj = select.poll()
    poll_obj.register(_fileno(obj), mask)

    # For some reason, poll() takes timeout in milliseconds
    def do_poll(t: float | None) -> list[tuple[int, int]]:
        if t is not None:
            t *= 1000
        return poll_obj.poll(t)

    return bool(do_poll(timeout))


def _have_working_poll() -> bool:
    # Apparently some systems have a select.poll that fails as soon as you try
    # to use it, either due to strange configuration or broken monkeypatching
    # from libraries like eventlet/greenlet.
    try:
        poll_obj = select.poll()
        poll_obj.poll(0)
    except (AttributeError, OSError):
        return False
    else:
        return True


def wait_for_handle(
    obj: _TYPE_WAITABLE,
    read: bool = False,
    write: bool = False,
    timeout: float | None = None,
) -> bool:
    # We delay choosing which implementation to use until the first time we're
    # called. We could do it at import time, but then we might make the wrong
    # decision if someone goes wild with monkeypatching select.poll after
    # we're imported.
    global wait_for_handle
    if _have_working_poll():
        wait_for_handle = poll_wait_for_handle
    elif hasattr(select, "select"):
        wait_for_handle = select_wait_for_handle
    return wait_for_handle(obj, read, write, timeout)


def wait_for_read(obj: _TYPE_WAITABLE, timeout: float | None = None) -> bool:
    """Waits for reading to be available on a given handle.
    Returns True if the handle is readable, or False if the timeout expired.
    """
    return wait_for_handle(obj, read=True, timeout=timeout)


def wait_for_write(obj: _TYPE_WAITABLE, timeout: float | None = None) -> bool:
    """Waits for writing to be available on a given handle.
    Returns True if the handle is writable, or False if the timeout expired.
    """
    return wait_for_handle(obj, write=True, timeout=timeout)
