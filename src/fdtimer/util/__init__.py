# For convenience, allow you to access the helpers most callers need from here.
from __future__ import annotations

from .repeat import UNCHANGED, Repeat
from .wait import wait_for_read, wait_for_write

__all__ = (
    "UNCHANGED",
    "Repeat",
    "wait_for_read",
    "wait_for_write",
)
