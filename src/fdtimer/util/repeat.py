from __future__ import annotations

import typing
from enum import Enum

from ..exceptions import InvalidRepetition

if typing.TYPE_CHECKING:
    from typing_extensions import Final


class _TYPE_UNCHANGED(Enum):
    token = 0


# Pass as the repetition to query the current value without changing it.
UNCHANGED: Final[_TYPE_UNCHANGED] = _TYPE_UNCHANGED.token

_TYPE_REPEAT = typing.Union["Repeat", bool, int]


class Repeat:
    """Number of times a timer is allowed to go off.

    This object should be treated as immutable. The timer keeps its own
    counter and only uses a ``Repeat`` to decode what the caller asked for.

    Example usage::

        Timer(callback, 5, Repeat.FOREVER)
        Timer(callback, 5, Repeat.exactly(3))

    :param count:
        Number of firings. ``0`` means the timer is inert, a positive value
        allows exactly that many firings and any negative value means the
        timer may fire forever. Negative values are normalized to ``-1``.
    """

    #: Fire a single time.
    ONCE: typing.ClassVar[Repeat]

    #: Fire until the timer is torn down.
    FOREVER: typing.ClassVar[Repeat]

    __slots__ = ("_count",)

    def __init__(self, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, int):
            raise InvalidRepetition(count)
        self._count = -1 if count < 0 else count

    @classmethod
    def exactly(cls, count: int) -> Repeat:
        """Fire exactly ``count`` times. Negative counts mean forever."""
        return cls(count)

    @classmethod
    def from_value(cls, value: _TYPE_REPEAT) -> Repeat:
        """Decode a boolean, integer or ``Repeat`` into a ``Repeat``.

        ``False`` means once and ``True`` means forever. The boolean check
        must come first since ``bool`` is a subclass of ``int``.
        """
        if isinstance(value, Repeat):
            return value
        if isinstance(value, bool):
            return cls.FOREVER if value else cls.ONCE
        if isinstance(value, int):
            return cls(value)
        raise InvalidRepetition(value)

    @property
    def count(self) -> int:
        return self._count

    @property
    def is_forever(self) -> bool:
        return self._count < 0

    @property
    def is_exhausted(self) -> bool:
        return self._count == 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Repeat):
            return self._count == other._count
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._count)

    def __repr__(self) -> str:
        if self.is_forever:
            return f"{type(self).__name__}.FOREVER"
        return f"{type(self).__name__}(count={self._count})"


Repeat.ONCE = Repeat(1)
Repeat.FOREVER = Repeat(-1)
