"""Argument checks and stride arithmetic shared by time-domain plans."""

from __future__ import annotations

from .errors import DedispError, ErrorCode
from .flags import Flag, check_sync_flags

DEFAULT_GULP_SIZE = 65536
MAX_NCHANS = 8192
SAMPS_PER_THREAD = 2

BITS_PER_BYTE = 8
SUPPORTED_IN_NBITS = frozenset({1, 2, 4, 8, 16, 32})
SUPPORTED_OUT_NBITS = frozenset({8, 16, 32})


def div_round_up(a: int, b: int) -> int:
    """Return ``a / b`` rounded up for a positive divisor ``b``."""
    if b <= 0:
        raise ValueError("divisor must be positive")
    return (a - 1) // b + 1


def check_nchans(nchans: int, limit: int = MAX_NCHANS) -> int:
    """Return ``nchans``, raising if it exceeds the channel limit."""
    if nchans > limit:
        raise DedispError(ErrorCode.NCHANS_EXCEEDS_LIMIT)
    return nchans


def _computed_samples(nsamps: int, max_delay: int) -> int:
    return max(nsamps - max_delay, 0)


def default_strides(nchans: int, nsamps: int, max_delay: int, in_nbits: int,
                    out_nbits: int) -> tuple[int, int]:
    """Return the tightly packed input and output strides in bytes.

    The input stride holds one sample of every channel; the output stride
    holds every computed sample of one DM.
    """
    in_stride = nchans * in_nbits // BITS_PER_BYTE
    out_bytes_per_sample = out_nbits // BITS_PER_BYTE
    out_stride = _computed_samples(nsamps, max_delay) * out_bytes_per_sample
    return in_stride, out_stride


def validate_execute(nchans: int, nsamps: int, max_delay: int, dm_count: int,
                     in_nbits: int, in_stride: int, out_nbits: int, out_stride: int,
                     flags: int = Flag.USE_DEFAULT) -> Flag:
    """Check the arguments of an execution request.

    The checks run in a fixed order and the first one that fails raises
    :class:`DedispError`. Returns the flags as a :class:`Flag`.
    """
    out_bytes_per_sample = out_nbits // BITS_PER_BYTE
    if (in_stride < nchans * in_nbits // BITS_PER_BYTE
            or out_stride < _computed_samples(nsamps, max_delay) * out_bytes_per_sample):
        raise DedispError(ErrorCode.INVALID_STRIDE)
    if dm_count == 0:
        raise DedispError(ErrorCode.NO_DM_LIST_SET)
    if nsamps < max_delay:
        raise DedispError(ErrorCode.TOO_FEW_NSAMPS)
    checked = check_sync_flags(flags)
    if in_nbits not in SUPPORTED_IN_NBITS:
        raise DedispError(ErrorCode.UNSUPPORTED_IN_NBITS)
    if out_nbits not in SUPPORTED_OUT_NBITS:
        raise DedispError(ErrorCode.UNSUPPORTED_OUT_NBITS)
    return checked