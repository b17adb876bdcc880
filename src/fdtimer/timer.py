from __future__ import annotations

import enum
import logging
import typing
import warnings

from .exceptions import ResourceLeakWarning, SpawnError
from .sources import _TYPE_SOURCE, WaitPrimitive, get_source
from .util.repeat import _TYPE_REPEAT, _TYPE_UNCHANGED, UNCHANGED, Repeat

if typing.TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from .sources import ReadinessSource

__all__ = ("Timer", "TimerState")

log = logging.getLogger(__name__)

_TYPE_CALLBACK = typing.Callable[..., typing.Any]


class TimerState(str, enum.Enum):
    """Where a :class:`Timer` stands in its lifecycle."""

    #: No helper running, the timer may be (re)armed.
    IDLE = "idle"
    #: A helper is running and the handle is waiting to become readable.
    ARMED = "armed"
    #: No helper running and no repetitions left.
    EXHAUSTED = "exhausted"


class Timer:
    """
    Calls a function once a delay has elapsed, in a way that fits in a
    ``select()`` loop.

    The timer does no waiting of its own. :meth:`reset` arms it, after which
    :meth:`get_stream` returns a handle to be polled for readability together
    with any other I/O source. Once that handle is readable, the owner of the
    loop calls :meth:`activate`, which runs the callback, and decides whether
    to :meth:`reset` the timer again.

    Example usage::

        def tick(timer, name):
            print("tick", name)

        timer = Timer(tick, 2.5, repeat=True, args=("a",))
        timer.reset()
        while True:
            readable, _, _ = select.select([timer, sock], [], [])
            if timer in readable:
                timer.activate()
                timer.reset()

    :param callback:
        Called as ``callback(timer, *args)`` whenever the timer fires.

    :param delay:
        Number of seconds to wait for before the timer fires. Fractions are
        honored. This cannot be changed once the timer is created.

    :param repeat:
        How many times the timer may be armed. ``False`` (the default) means
        once and ``True`` means forever. An integer gives the exact number of
        times, with any negative value meaning forever. A
        :class:`~fdtimer.util.repeat.Repeat` is accepted as well.

    :param args:
        Additional arguments passed to ``callback`` after the timer itself.

    :param source:
        The :class:`~fdtimer.sources.ReadinessSource` used to produce the
        handle, either as an instance, a class or a registered name. Defaults
        to :func:`~fdtimer.sources.default_source`.
    """

    def __init__(
        self,
        callback: _TYPE_CALLBACK,
        delay: float,
        repeat: _TYPE_REPEAT | _TYPE_UNCHANGED | None = False,
        args: typing.Iterable[typing.Any] = (),
        *,
        source: _TYPE_SOURCE = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay!r}")

        self._primitive: WaitPrimitive | None = None
        self._delay = delay
        self._repeat = Repeat.ONCE.count
        self._source = get_source(source)
        self.set_callback(callback)
        self.set_repetition(repeat)
        self.set_args(args)

    def __del__(self) -> None:
        if getattr(self, "_primitive", None) is not None:
            message = f"{self!r} was still armed when garbage collected"
            # Clean up first, the warning may be turned into an exception.
            self.cleanup()
            warnings.warn(message, ResourceLeakWarning, source=self)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> typing.Literal[False]:
        self.cleanup()
        # Return False to re-raise any potential exceptions
        return False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(callback={self._callback!r}, "
            f"delay={self._delay!r}, repeat={self._repeat!r}, "
            f"state={self.state.value})"
        )

    def cleanup(self) -> None:
        """
        Stop the helper process, if any, and close the handle.

        Safe to call at any time and any number of times. Called before every
        rearm and when the timer goes away.
        """
        primitive, self._primitive = self._primitive, None
        if primitive is not None:
            log.debug("Tearing down timer helper (pid %d)", primitive.process.pid)
            self._source.release(primitive)

    def set_callback(self, callback: _TYPE_CALLBACK) -> None:
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {callback!r}")
        self._callback = callback

    def get_callback(self) -> _TYPE_CALLBACK:
        return self._callback

    def set_args(self, args: typing.Iterable[typing.Any]) -> None:
        self._args = tuple(args)

    def get_args(self) -> tuple[typing.Any, ...]:
        """
        The arguments passed to the callback after the timer.

        The timer itself is always the first argument the callback receives,
        but it is not part of the returned tuple.
        """
        return self._args

    @property
    def delay(self) -> float:
        return self._delay

    def get_delay(self) -> float:
        """The delay given at construction, it does not count down."""
        return self._delay

    @property
    def source(self) -> ReadinessSource:
        return self._source

    def get_repetition(self) -> int:
        """
        Number of times the timer may still be armed.

        ``0`` means it cannot be armed anymore and ``-1`` means there is no
        limit.
        """
        return self._repeat

    def set_repetition(
        self, repeat: _TYPE_REPEAT | _TYPE_UNCHANGED | None = UNCHANGED
    ) -> int:
        """
        Change the number of times the timer may be armed.

        Passing ``None`` or :data:`~fdtimer.util.repeat.UNCHANGED` leaves it
        as is. Returns the resulting repetition counter.

        :raises InvalidRepetition:
            If ``repeat`` is not a boolean, an integer or a ``Repeat``. The
            counter is left untouched.
        """
        if repeat is None or repeat is UNCHANGED:
            return self._repeat
        self._repeat = Repeat.from_value(repeat).count
        return self._repeat

    @property
    def state(self) -> TimerState:
        if self._primitive is not None:
            return TimerState.ARMED
        if self._repeat == 0:
            return TimerState.EXHAUSTED
        return TimerState.IDLE

    def get_stream(self) -> typing.Any:
        """
        The handle to poll for readability, or ``None`` when not armed.

        Its readability is the only signal, its content is meaningless and
        should not be read.
        """
        if self._primitive is None:
            return None
        return self._primitive.handle

    def fileno(self) -> int:
        """File descriptor of the handle, so the timer can be given to ``select()``."""
        if self._primitive is None:
            raise ValueError("Timer is not armed")
        return int(self._primitive.handle.fileno())

    def reset(self) -> bool:
        """
        (Re)arm the timer.

        Consumes one repetition, stops any helper still running and starts a
        fresh one. It is up to whoever drives the timer to call this again
        after it fired.

        :returns:
            ``False`` if there are no repetitions left, in which case nothing
            else happens. ``True`` otherwise.

        :raises SpawnError:
            If the helper could not be started. The timer is left idle and the
            repetition consumed by this call is given back.
        """
        consumed = False
        if self._repeat > 0:
            self._repeat -= 1
            consumed = True
        elif self._repeat == 0:
            log.debug("No repetitions left for %r", self)
            return False

        self.cleanup()

        try:
            self._primitive = self._source.spawn(self._delay, label=self._label())
        except SpawnError:
            if consumed:
                self._repeat += 1
            raise
        return True

    def activate(self) -> bool:
        """
        Fire the timer: tear down the helper, then call the callback.

        Meant to be called once the handle became readable. Calling it at any
        other time calls the callback right away, without any waiting.

        :returns: The callback's return value, as a boolean.
        """
        self.cleanup()
        log.debug("Firing %r", self)
        return bool(self._callback(self, *self._args))

    def _label(self) -> str:
        callback = self._callback
        return getattr(callback, "__qualname__", None) or type(callback).__qualname__
