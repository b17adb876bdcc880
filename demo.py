"""
A tiny select() loop driving a few timers alongside standard input.

Type a line and press enter at any time: it is echoed back while the timers
keep ticking. The loop stops once every timer is exhausted.
"""
import logging
import select
import sys

import fdtimer

fdtimer.add_stderr_logger(logging.INFO)


def tick(timer, name):
    print(f"{name}: tick ({timer.get_repetition()} left)")
    return True


timers = [
    fdtimer.Timer(tick, 1, 5, args=("fast",)),
    fdtimer.Timer(tick, 2.5, 2, args=("slow",)),
]
for timer in timers:
    timer.reset()

inputs = [sys.stdin] if sys.platform != "win32" else []
while any(t.state is fdtimer.TimerState.ARMED for t in timers):
    armed = [t for t in timers if t.state is fdtimer.TimerState.ARMED]
    readable, _, _ = select.select(armed + inputs, [], [])
    for ready in readable:
        if ready is sys.stdin:
            line = sys.stdin.readline()
            if not line:
                inputs.remove(sys.stdin)
                continue
            print("echo:", line.rstrip())
            continue
        ready.activate()
        ready.reset()

print("All timers exhausted.")
