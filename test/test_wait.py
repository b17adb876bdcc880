from __future__ import annotations

import os
import signal
import socket
import threading
import time
import typing
from test import notWindows

import pytest

from fdtimer.util.wait import (
    _have_working_poll,
    poll_wait_for_handle,
    select_wait_for_handle,
    wait_for_handle,
    wait_for_read,
    wait_for_write,
)

TYPE_SOCKET_PAIR = typing.Tuple[socket.socket, socket.socket]
TYPE_WAIT_FOR = typing.Callable[..., bool]


@pytest.fixture
def spair() -> typing.Generator[TYPE_SOCKET_PAIR, None, None]:
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def pipe() -> typing.Generator[tuple[int, int], None, None]:
    r, w = os.pipe()
    yield r, w
    os.close(r)
    os.close(w)


def fill(sock: socket.socket) -> None:
    sock.setblocking(False)
    try:
        while True:
            sock.send(b"x" * 65536)
    except OSError:
        pass


variants: list[TYPE_WAIT_FOR] = [wait_for_handle, select_wait_for_handle]
if _have_working_poll():
    variants.append(poll_wait_for_handle)


@pytest.mark.parametrize("wfh", variants)
class TestWaitForHandle:
    def test_nothing_requested(
        self, wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR
    ) -> None:
        with pytest.raises(RuntimeError):
            wfh(spair[0], read=False, write=False)

    def test_socket(self, wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        assert not wfh(ours, read=True, timeout=0)
        assert wfh(ours, write=True, timeout=0)

        theirs.send(b"42\n")
        assert wfh(ours, read=True, timeout=0)
        assert wfh(ours, read=True, timeout=None)
        assert ours.recv(64) == b"42\n"
        assert not wfh(ours, read=True, timeout=0)

    def test_full_socket(self, wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        fill(ours)
        assert not wfh(ours, write=True, timeout=0)
        assert not wfh(ours, read=True, write=True, timeout=0)

        theirs.send(b"x")
        assert wfh(ours, read=True, write=True, timeout=0)

    def test_peer_closed(self, wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        theirs.close()
        assert wfh(ours, read=True, timeout=0)
        assert ours.recv(64) == b""

    def test_file_descriptor(self, wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        assert not wfh(ours.fileno(), read=True, timeout=0)
        theirs.send(b"x")
        assert wfh(ours.fileno(), read=True, timeout=0)

    @notWindows
    def test_pipe(self, wfh: TYPE_WAIT_FOR, pipe: tuple[int, int]) -> None:
        r, w = pipe
        assert not wfh(r, read=True, timeout=0)
        os.write(w, b"42\n")
        assert wfh(r, read=True, timeout=0)

    @notWindows
    def test_pipe_writer_gone(self, wfh: TYPE_WAIT_FOR) -> None:
        r, w = os.pipe()
        try:
            os.close(w)
            assert wfh(r, read=True, timeout=0)
            assert os.read(r, 64) == b""
        finally:
            os.close(r)


class TestWaitForReadWrite:
    def test_read(self, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        assert not wait_for_read(ours, 0)
        theirs.send(b"x")
        assert wait_for_read(ours, 0)

    def test_write(self, spair: TYPE_SOCKET_PAIR) -> None:
        ours, _ = spair
        assert wait_for_write(ours, 0)
        fill(ours)
        assert not wait_for_write(ours, 0)

    def test_timeout_elapses(self, spair: TYPE_SOCKET_PAIR) -> None:
        start = time.monotonic()
        assert not wait_for_read(spair[0], 0.2)
        assert time.monotonic() - start >= 0.15

    def test_wakes_up(self, spair: TYPE_SOCKET_PAIR) -> None:
        ours, theirs = spair
        sender = threading.Timer(0.1, theirs.send, args=(b"x",))
        sender.start()
        try:
            start = time.monotonic()
            assert wait_for_read(ours, 10)
            assert time.monotonic() - start < 9
        finally:
            sender.cancel()


@notWindows
@pytest.mark.skipif(not hasattr(signal, "setitimer"), reason="need setitimer() support")
@pytest.mark.parametrize("wfh", variants)
def test_eintr(wfh: TYPE_WAIT_FOR, spair: TYPE_SOCKET_PAIR) -> None:
    interrupts: list[int] = []

    def handler(sig: int, frame: object) -> None:
        interrupts.append(sig)

    old_handler = signal.signal(signal.SIGALRM, handler)
    try:
        start = time.monotonic()
        try:
            # A signal every 100ms must not cut the one second wait short.
            signal.setitimer(signal.ITIMER_REAL, 0.1, 0.1)
            assert not wfh(spair[0], read=True, timeout=1)
        finally:
            signal.setitimer(signal.ITIMER_REAL, 0)
        assert 0.9 < time.monotonic() - start < 3
    finally:
        signal.signal(signal.SIGALRM, old_handler)

    assert interrupts
    assert all(sig == signal.SIGALRM for sig in interrupts)
