from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from .sources import ReadinessSource

# Base Exceptions


class TimerError(Exception):
    """Base exception used by this module."""

    pass


class TimerWarning(Warning):
    """Base warning used by this module."""

    pass


_TYPE_REDUCE_RESULT = typing.Tuple[
    typing.Callable[..., object], typing.Tuple[object, ...]
]


# Leaf Exceptions


class InvalidRepetition(TimerError, ValueError):
    """Raised when a repetition value is neither a boolean nor an integer."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(
            f"Invalid repetition {value!r}, expected a bool, an int or a Repeat"
        )

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.value,)


class SpawnError(TimerError):
    """Raised when the helper process backing a timer could not be started.

    The original error is also available as ``__cause__``.
    """

    original_error: Exception

    def __init__(
        self, source: ReadinessSource | None, message: str, error: Exception
    ) -> None:
        self.source = source
        self.original_error = error
        super().__init__(f"{source}: {message} (Caused by {error!r})")

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (None, "", self.original_error)


class ResourceLeakWarning(TimerWarning):
    """Warned when an armed timer is garbage collected without being cleaned up."""

    pass
