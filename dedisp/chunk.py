"""Time segmentation helpers for frequency-domain dedispersion."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Chunk:
    """One time segment and where its spectrum lives in the padded buffer."""

    isamp_start: int
    isamp_end: int
    ifreq_start: int
    ifreq_end: int
    nfreq_good: int

    @property
    def nsamp(self) -> int:
        """Number of time samples in the segment."""
        return self.isamp_end - self.isamp_start


def compute_chunks(nchunk: int, nsamp: int, nsamp_good: int, nfft: int,
                   nfreq_chunk_padded: int) -> tuple[list[Chunk], int]:
    """Split ``nsamp`` samples into ``nchunk`` overlapping segments.

    Returns the chunks and the total number of spin frequencies computed.
    """
    chunks = []
    nfreq_computed = 0
    for ichunk in range(nchunk):
        isamp_start = ichunk * nsamp_good
        if isamp_start > nsamp:
            raise ValueError(f"chunk {ichunk} starts beyond the last sample")
        isamp_end = min(isamp_start + nfft, nsamp)
        nfreq = math.ceil((isamp_end - isamp_start) / 2.0) + 1
        ifreq_start = ichunk * nfreq_chunk_padded
        ifreq_end = ifreq_start + nfreq
        chunks.append(Chunk(isamp_start, isamp_end, ifreq_start, ifreq_end, nfreq))
        nfreq_computed += ifreq_end - ifreq_start
    return chunks, nfreq_computed


def format_chunks(chunks) -> str:
    """Describe each chunk on its own line."""
    return "\n".join(
        "Chunk %d: isamp %5d - %5d, nsamp: %5d, ifreq: %5d - %5d, nfreq: %d" % (
            ichunk, chunk.isamp_start, chunk.isamp_end, chunk.nsamp,
            chunk.ifreq_start * 2, chunk.ifreq_end * 2, chunk.nfreq_good * 2)
        for ichunk, chunk in enumerate(chunks)
    )


def copy_chunk_output(src, ndm: int, nsamp_computed: int, nsamp_padded: int,
                      nsamp_good: int, chunks) -> np.ndarray:
    """Gather the good samples of every chunk into an ``(ndm, nsamp_computed)`` array."""
    data = np.asarray(src, dtype=np.float32).ravel()
    if data.size < ndm * nsamp_padded:
        raise ValueError("source buffer too small")
    rows = data[:ndm * nsamp_padded].reshape(ndm, nsamp_padded)
    out = np.zeros((ndm, nsamp_computed), dtype=np.float32)
    ostart = 0
    for chunk in chunks:
        istart = chunk.ifreq_start * 2
        oend = min(nsamp_computed, ostart + nsamp_good)
        count = oend - ostart
        if count > 0:
            out[:, ostart:oend] = rows[:, istart:istart + count]
            ostart += count
    return out


def generate_spin_frequency_table_chunks(chunks, size: int, nfreq_chunk: int,
                                         nfreq_chunk_padded: int, nfft: int,
                                         dt: float) -> np.ndarray:
    """Return a float32 table of ``size`` entries with each chunk's spin frequencies."""
    table = np.zeros(size, dtype=np.float32)
    frequencies = (np.arange(nfreq_chunk, dtype=np.float64) * (1.0 / (nfft * dt))).astype(np.float32)
    for ichunk in range(len(chunks)):
        start = ichunk * nfreq_chunk_padded
        table[start:start + nfreq_chunk] = frequencies
    return table