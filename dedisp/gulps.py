"""Decomposition of a time-domain dedispersion run into gulps."""

from __future__ import annotations

from dataclasses import dataclass

from .validation import div_round_up

DEFAULT_GULP_SIZE = 65536

_BYTES_PER_FLOAT = 4
_BYTES_PER_BOOL = 4


@dataclass(frozen=True)
class Gulp:
    """One block of output samples processed in a single pass."""

    gulp_samp_idx: int
    nsamps_computed_gulp: int
    nsamps_gulp: int
    nsamps_padded_gulp: int

    @property
    def end(self) -> int:
        """Index one past the last output sample of this gulp."""
        return self.gulp_samp_idx + self.nsamps_computed_gulp


def plan_gulps(nsamps_computed: int, gulp_size: int = DEFAULT_GULP_SIZE,
               max_delay: int = 0, samps_per_thread: int = 2) -> list[Gulp]:
    """Split ``nsamps_computed`` output samples into gulps of at most ``gulp_size``.

    Each gulp reads its computed samples plus ``max_delay`` input samples; the
    padded length rounds the computed samples up to a multiple of
    ``samps_per_thread`` before adding the delay.
    """
    if nsamps_computed <= 0:
        raise ValueError("there must be at least one sample to compute")
    if gulp_size <= 0:
        raise ValueError("gulp size must be positive")
    if samps_per_thread <= 0:
        raise ValueError("samples per thread must be positive")
    if max_delay < 0:
        raise ValueError("maximum delay must not be negative")

    gulp_max = min(gulp_size, nsamps_computed)
    nr_gulps = div_round_up(nsamps_computed, gulp_max)
    gulps = []
    for index in range(nr_gulps):
        start = index * gulp_max
        computed = min(gulp_max, nsamps_computed - start)
        padded = div_round_up(computed, samps_per_thread) * samps_per_thread + max_delay
        gulps.append(Gulp(start, computed, computed + max_delay, padded))
    return gulps


def max_nchans(const_mem_bytes: int) -> int:
    """Largest channel count whose delay table and killmask fit in constant memory."""
    if const_mem_bytes < 0:
        raise ValueError("memory size must not be negative")
    return const_mem_bytes // (_BYTES_PER_FLOAT + _BYTES_PER_BOOL)


def uses_texture_memory(capability: int) -> bool:
    """Whether the kernel should read its input through texture memory.

    ``capability`` is ``10 * major + minor``. Texture reads pay off before
    Fermi and on Pascal.
    """
    return capability < 20 or capability in (60, 61)