"""Execution flags."""

from __future__ import annotations

from enum import IntFlag

from .errors import DedispError, ErrorCode


class Flag(IntFlag):
    """Flags that adjust how a plan executes."""

    USE_DEFAULT = 0
    HOST_POINTERS = 1 << 1
    DEVICE_POINTERS = 1 << 2
    WAIT = 1 << 3
    ASYNC = 1 << 4


def check_sync_flags(flags: int) -> Flag:
    """Return ``flags`` as a :class:`Flag`, rejecting ASYNC combined with WAIT."""
    value = Flag(flags)
    if value & Flag.ASYNC and value & Flag.WAIT:
        raise DedispError(ErrorCode.INVALID_FLAG_COMBINATION)
    return value