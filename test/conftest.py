from __future__ import annotations

import typing

import pytest

from fdtimer import Timer
from fdtimer.sources import SOURCE_ENVIRON, default_source


class CallRecorder:
    """Callback that remembers how it was called."""

    def __init__(self, result: typing.Any = None) -> None:
        self.calls: list[tuple[typing.Any, ...]] = []
        self.result = result

    def __call__(self, *args: typing.Any) -> typing.Any:
        self.calls.append(args)
        return self.result


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


@pytest.fixture
def make_timer() -> typing.Generator[typing.Callable[..., Timer], None, None]:
    """Build timers that are torn down once the test is over."""
    timers: list[Timer] = []

    def factory(*args: typing.Any, **kwargs: typing.Any) -> Timer:
        timer = Timer(*args, **kwargs)
        timers.append(timer)
        return timer

    yield factory

    for timer in timers:
        timer.cleanup()


@pytest.fixture
def fresh_default_source(
    monkeypatch: pytest.MonkeyPatch,
) -> typing.Generator[None, None, None]:
    """Resolve the default readiness source again, ignoring the environment."""
    monkeypatch.delenv(SOURCE_ENVIRON, raising=False)
    default_source.cache_clear()
    yield
    default_source.cache_clear()
