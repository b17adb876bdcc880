"""
Readiness sources: the OS-level handles a :class:`~fdtimer.timer.Timer`
exposes to a ``select``-style loop.

Every source starts a helper interpreter that sleeps for the timer's delay and
then writes :data:`EXPIRY_MARKER` to its standard output. What differs between
sources is what that standard output is connected to, and therefore what the
parent process ends up polling.
"""

from __future__ import annotations

import functools
import io
import logging
import os
import socket
import subprocess
import sys
import tempfile
import typing

from .exceptions import SpawnError

__all__ = (
    "EXPIRY_MARKER",
    "SOURCES",
    "PipeSource",
    "ReadinessSource",
    "SocketPairSource",
    "TempFileSource",
    "WaitPrimitive",
    "default_source",
    "get_source",
)

log = logging.getLogger(__name__)

#: Bytes written by the helper once the delay has elapsed. Only their
#: arrival matters, the content is never parsed.
EXPIRY_MARKER = b"42\n"

#: Environment variable naming the source to use instead of the probed one.
SOURCE_ENVIRON = "FDTIMER_SOURCE"

_HELPER_SCRIPT = """\
import sys, time
{prologue}time.sleep({delay!r})
{write}
# {label}
"""

_STDOUT_WRITE = "sys.stdout.buffer.write({marker!r}); sys.stdout.buffer.flush()"

# Windows cannot hand a socket to a child as its standard output, so the
# socket is duplicated into the child with socket.share() over stdin instead.
_SHARE_PROLOGUE = "import socket\nsock = socket.fromshare(sys.stdin.buffer.read())\n"
_SHARE_WRITE = "sock.sendall({marker!r})"

# Keeps the helper's command line well below the OS limit.
_MAX_LABEL_LENGTH = 200


class WaitPrimitive(typing.NamedTuple):
    """A readable handle together with the helper process driving it."""

    handle: typing.Any
    process: subprocess.Popen[bytes]


def _helper_script(
    delay: float, label: str = "", prologue: str = "", write: str = _STDOUT_WRITE
) -> str:
    # The label ends up in a comment, keep it on a single short line.
    label = " ".join(label.split())[:_MAX_LABEL_LENGTH]
    return _HELPER_SCRIPT.format(
        prologue=prologue,
        delay=float(delay),
        write=write.format(marker=EXPIRY_MARKER),
        label=label,
    )


class ReadinessSource:
    """
    Produces handles that become ready to read once a delay has elapsed.

    Subclass this and implement :meth:`_spawn` to ship another source.
    Instances hold no per-timer state, a single one is shared by every timer
    of the process unless told otherwise.
    """

    #: Name used to select this source, e.g. through ``FDTIMER_SOURCE``.
    name: typing.ClassVar[str]

    def spawn(self, delay: float, label: str = "") -> WaitPrimitive:
        """
        Start a helper that signals readiness after ``delay`` seconds.

        :param delay:
            Number of seconds to wait for, fractions are honored.
        :param label:
            Free-form text embedded in the helper's command line. Useful to
            tell helpers apart in a process listing.
        :raises SpawnError:
            If the helper or its handle could not be created.
        """
        try:
            primitive = self._spawn(delay, label)
        except (OSError, subprocess.SubprocessError) as e:
            raise SpawnError(self, "Failed to start the timer helper", e) from e

        log.debug(
            "Started timer helper (pid %d) using %s, expiring in %ss",
            primitive.process.pid,
            self.name,
            delay,
        )
        return primitive

    def release(self, primitive: WaitPrimitive) -> None:
        """
        Forcibly stop the helper and close the handle.

        The helper is killed even if it already wrote its marker: it may
        still be lingering. Errors are logged and swallowed.
        """
        handle, process = primitive
        try:
            process.kill()
        except OSError as e:
            log.debug("Could not kill timer helper (pid %d): %r", process.pid, e)
        try:
            process.wait()
        except OSError as e:
            log.debug("Could not reap timer helper (pid %d): %r", process.pid, e)

        try:
            handle.close()
        except OSError as e:
            log.debug("Could not close timer handle %r: %r", handle, e)

    def _spawn(self, delay: float, label: str) -> WaitPrimitive:
        raise NotImplementedError()

    def _popen(
        self,
        script: str,
        stdout: int | typing.IO[bytes],
        stdin: int | typing.IO[bytes] = subprocess.DEVNULL,
    ) -> subprocess.Popen[bytes]:
        # -I keeps the user's environment and site-packages out of the
        # helper, -S skips the site module for a faster startup.
        return subprocess.Popen(
            [sys.executable, "-I", "-S", "-c", script],
            stdin=stdin,
            stdout=stdout,
            stderr=subprocess.DEVNULL,
            bufsize=0,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PipeSource(ReadinessSource):
    """The helper writes to a pipe, the read end of which is polled."""

    name = "pipe"

    def _spawn(self, delay: float, label: str) -> WaitPrimitive:
        process = self._popen(_helper_script(delay, label), stdout=subprocess.PIPE)
        assert process.stdout is not None
        return WaitPrimitive(process.stdout, process)


class SocketPairSource(ReadinessSource):
    """
    The helper writes to one end of a connected socket pair and the other end
    is polled. This is the only source usable with ``select()`` on Windows,
    where pipes cannot be waited on.
    """

    name = "socketpair"

    def _spawn(self, delay: float, label: str) -> WaitPrimitive:
        ours, theirs = socket.socketpair()
        try:
            if hasattr(theirs, "share"):
                process = self._spawn_shared(theirs, delay, label)
            else:
                process = self._popen(
                    _helper_script(delay, label), stdout=theirs.fileno()
                )
        except BaseException:
            ours.close()
            raise
        finally:
            # The helper holds its own copy, we have no use for this end.
            theirs.close()
        return WaitPrimitive(ours, process)

    def _spawn_shared(
        self, sock: socket.socket, delay: float, label: str
    ) -> subprocess.Popen[bytes]:
        script = _helper_script(
            delay, label, prologue=_SHARE_PROLOGUE, write=_SHARE_WRITE
        )
        process = self._popen(script, stdout=subprocess.DEVNULL, stdin=subprocess.PIPE)
        assert process.stdin is not None
        try:
            process.stdin.write(sock.share(process.pid))
            process.stdin.close()
        except OSError:
            process.kill()
            process.wait()
            raise
        return process


class _TemporaryReader(io.FileIO):
    """Read handle on a temporary file, removing the file once closed."""

    def close(self) -> None:
        try:
            super().close()
        finally:
            try:
                os.unlink(self.name)  # type: ignore[arg-type]
            except OSError:
                pass


class TempFileSource(ReadinessSource):
    """
    The helper writes to a temporary file, a separate handle on which is
    exposed.

    Regular files always look readable to ``select()`` on POSIX systems, so
    with this source the timer has expired when reading the handle yields
    data, not merely when the handle is reported as ready.
    """

    name = "tempfile"

    def _spawn(self, delay: float, label: str) -> WaitPrimitive:
        fd, path = tempfile.mkstemp(prefix="fdtimer-")
        try:
            reader = _TemporaryReader(path, "r")
        except BaseException:
            os.close(fd)
            os.unlink(path)
            raise

        try:
            process = self._popen(_helper_script(delay, label), stdout=fd)
        except BaseException:
            reader.close()
            raise
        finally:
            os.close(fd)

        # Drain whatever is immediately available so that only the helper's
        # post-delay write is left to be seen.
        reader.read()
        return WaitPrimitive(reader, process)


#: Registered sources, by name.
SOURCES: dict[str, type[ReadinessSource]] = {
    cls.name: cls for cls in (PipeSource, SocketPairSource, TempFileSource)
}


def _probe_platform() -> str:
    # select() on Windows only accepts sockets.
    if sys.platform == "win32":
        return SocketPairSource.name
    return PipeSource.name


@functools.lru_cache(maxsize=None)
def default_source() -> ReadinessSource:
    """
    The readiness source used by timers that were not given one.

    Resolved once per process: the ``FDTIMER_SOURCE`` environment variable
    wins, otherwise the platform is probed. Use ``default_source.cache_clear()``
    to resolve it again.
    """
    name = os.environ.get(SOURCE_ENVIRON) or _probe_platform()
    source = get_source(name)
    log.debug("Using %r as the default readiness source", source)
    return source


_TYPE_SOURCE = typing.Union[ReadinessSource, typing.Type[ReadinessSource], str, None]


def get_source(source: _TYPE_SOURCE = None) -> ReadinessSource:
    """
    Normalize a readiness source specifier into a :class:`ReadinessSource`.

    :param source:
        An instance, a subclass, the name of a registered source, or ``None``
        for :func:`default_source`.
    """
    if source is None:
        return default_source()
    if isinstance(source, ReadinessSource):
        return source
    if isinstance(source, type) and issubclass(source, ReadinessSource):
        return source()
    if isinstance(source, str):
        try:
            return SOURCES[source.strip().lower()]()
        except KeyError:
            raise ValueError(
                f"unknown readiness source specifier {source}"
            ) from None
    raise TypeError(f"not expecting type {type(source).__name__}")
