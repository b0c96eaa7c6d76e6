"""Frequency-domain dedispersion executed on the host."""

from __future__ import annotations

import logging
import math
import os
import re
import time
from contextlib import contextmanager
from typing import NamedTuple

import numpy as np

from .chunk import (
    compute_chunks,
    copy_chunk_output,
    format_chunks,
    generate_spin_frequency_table_chunks,
)
from .errors import DedispError, ErrorCode
from .helper import copy_data, round_up, transpose_data
from .kernels import (
    dedisperse_optimized,
    dedisperse_reference,
    dedisperse_segmented_optimized,
    dedisperse_segmented_reference,
    fft_c2r,
    fft_r2c,
)

logger = logging.getLogger(__name__)

_INIT_TIME = "Initialization time : "
_PREPROCESSING_TIME = "Preprocessing time  : "
_DEDISPERSION_TIME = "Dedispersion time   : "
_POSTPROCESSING_TIME = "Postprocessing time : "
_OUTPUT_MEMCPY_TIME = "Output memcpy time  : "
_TOTAL_TIME = "Total time          : "

_DEBUG = ">> Debug"
_TIMINGS = ">> Timings"
_MEMORY_ALLOC = ">> Allocate memory"
_PREPARE_INPUT = ">> Prepare input"
_FFT_R2C = ">> FFT input r2c"
_FFT_C2R = ">> FFT output c2r"
_FDD_DEDISPERSION = ">> Perform dedispersion in frequency domain"
_COPY_OUTPUT = ">> Copy output"

_FFT_BLOCK = 16384
_PAD_BLOCK = 1024
_INPUT_OFFSET = 127.5
_CHANNEL_BATCH = 32
_MIN_EFFICIENCY = np.float32(0.8)
_USE_ZERO_PADDING = True


class _SegmentLayout(NamedTuple):
    nfft: int
    nsamp_dm: int
    nsamp_good: int
    nchunk: int
    nfreq_chunk: int
    nfreq_chunk_padded: int
    nsamp_padded: int


def _env_flag(name: str) -> bool:
    """Interpret an environment variable as an integer switch (unset means off)."""
    value = os.environ.get(name)
    if value is None:
        return False
    match = re.match(r"\s*([+-]?\d+)", value)
    return bool(match) and int(match.group(1)) != 0


def generate_spin_frequency_table(nfreq: int, nsamp: int, dt: float) -> np.ndarray:
    """Return the spin frequencies ``ifreq / (nsamp * dt)`` for ``nfreq`` bins."""
    span = float(np.float32(nsamp) * np.float32(dt))
    return (np.arange(nfreq, dtype=np.float64) * (1.0 / span)).astype(np.float32)


def segment_layout(nsamp: int, max_delay: float) -> _SegmentLayout:
    """Work out the segment sizes used to process ``nsamp`` samples in chunks.

    The FFT size starts at 16384 and doubles until at least 80 % of every
    segment holds samples unaffected by the maximum delay.
    """
    nsamp_dm = math.ceil(max_delay)
    nfft = _FFT_BLOCK
    while nfft * (1.0 - float(_MIN_EFFICIENCY)) < nsamp_dm:
        nfft *= 2
    nsamp_good = nfft - nsamp_dm
    nchunk = math.ceil(float(np.float32(nsamp) / np.float32(nsamp_good)))
    nfreq_chunk = nfft // 2 + 1
    nfreq_chunk_padded = round_up(nfreq_chunk + 1, _PAD_BLOCK)
    nsamp_padded = nchunk * (nfreq_chunk_padded * 2)
    return _SegmentLayout(nfft, nsamp_dm, nsamp_good, nchunk, nfreq_chunk,
                          nfreq_chunk_padded, nsamp_padded)


@contextmanager
def _timed(timings: dict, key: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        timings[key] = timings.get(key, 0.0) + time.perf_counter() - start


def _log_timings(timings: dict) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug(_TIMINGS)
    for label, key in ((_INIT_TIME, "init"), (_PREPROCESSING_TIME, "preprocessing"),
                       (_DEDISPERSION_TIME, "dedispersion"),
                       (_POSTPROCESSING_TIME, "postprocessing"),
                       (_OUTPUT_MEMCPY_TIME, "output"), (_TOTAL_TIME, "total")):
        logger.debug("%s%f sec.", label, timings.get(key, 0.0))


class FDDCPUPlan:
    """Frequency-domain dedispersion plan running on the host.

    By default the whole time series is transformed at once and channels are
    summed in batches of 32. Setting ``USE_SEGMENTED`` selects the time
    segmented variant, ``USE_REFERENCE`` the straightforward kernels and,
    within the segmented variant, ``USE_SEGMENTED_KERNEL`` the chunk-aware
    kernels.
    """

    def __init__(self, nchans: int, dt: float, dm_list, delay_table, max_delay: float) -> None:
        self.nchans = int(nchans)
        self.dt = float(dt)
        self.dm_list = np.asarray(dm_list, dtype=np.float32).ravel()
        self.delay_table = np.asarray(delay_table, dtype=np.float32).ravel()
        if self.delay_table.size != self.nchans:
            raise ValueError(
                f"delay table has {self.delay_table.size} entries, expected {self.nchans}")
        self.max_delay = max_delay
        self._spin_frequencies = np.zeros(0, dtype=np.float32)

    @property
    def dm_count(self) -> int:
        """Number of trial DMs."""
        return int(self.dm_list.size)

    def execute(self, nsamps: int, data, in_nbits: int = 8, out_nbits: int = 32,
                flags: int = 0) -> np.ndarray:
        """Dedisperse ``nsamps`` 8-bit samples of every channel.

        ``data`` is sample-major, one byte per channel. Returns a float32
        array of shape ``(dm_count, nsamps - max_delay)``.
        """
        if self.dm_count == 0:
            raise DedispError(ErrorCode.NO_DM_LIST_SET)
        if nsamps < self.max_delay:
            raise DedispError(ErrorCode.TOO_FEW_NSAMPS)
        if _env_flag("USE_SEGMENTED"):
            logger.debug(">> Running segmented CPU implementation")
            return self._execute_segmented(nsamps, data)
        logger.debug(">> Running CPU implementation")
        return self._execute_whole(nsamps, data)

    def _transpose_input(self, data, nsamps: int, nsamp_padded: int) -> np.ndarray:
        rows = transpose_data(data, self.nchans, nsamps, self.nchans, nsamp_padded,
                              _INPUT_OFFSET, self.nchans)
        return rows.reshape(self.nchans, nsamp_padded)

    def _execute_whole(self, nsamps: int, data) -> np.ndarray:
        nchan = self.nchans
        ndm = self.dm_count
        nfreq = nsamps // 2 + 1
        nsamp_computed = int(nsamps - self.max_delay)
        nsamp_fft = round_up(nsamps + 1, _FFT_BLOCK) if _USE_ZERO_PADDING else nsamps
        nsamp_padded = round_up(nsamp_fft + 1, _PAD_BLOCK)
        logger.debug(_DEBUG)
        logger.debug("nsamp_fft    = %d", nsamp_fft)
        logger.debug("nsamp_padded = %d", nsamp_padded)

        timings: dict = {}
        with _timed(timings, "total"):
            with _timed(timings, "init"):
                logger.debug(_MEMORY_ALLOC)
                if self._spin_frequencies.size != nfreq:
                    self._spin_frequencies = generate_spin_frequency_table(
                        nfreq, nsamps, self.dt)

            with _timed(timings, "preprocessing"):
                logger.debug(_PREPARE_INPUT)
                data_nu = self._transpose_input(data, nsamps, nsamp_padded)
                logger.debug(_FFT_R2C)
                spectra = np.zeros((nchan, nsamp_padded // 2), dtype=np.complex64)
                spectra[:, :nsamp_fft // 2 + 1] = fft_r2c(data_nu, nsamp_fft)

            with _timed(timings, "dedispersion"):
                logger.debug(_FDD_DEDISPERSION)
                if _env_flag("USE_REFERENCE"):
                    logger.debug(">> Running reference implementation")
                    data_dm = dedisperse_reference(
                        self.dm_list, self.delay_table, self.dt,
                        self._spin_frequencies, spectra, nfreq)
                else:
                    logger.debug(">> Running optimized implementation")
                    data_dm = dedisperse_optimized(
                        self.dm_list, self.delay_table, self.dt,
                        self._spin_frequencies, spectra, nfreq, _CHANNEL_BATCH, False)

            with _timed(timings, "postprocessing"):
                logger.debug(_FFT_C2R)
                series = fft_c2r(data_dm, nsamp_fft, nsamp_padded)

            with _timed(timings, "output"):
                logger.debug(_COPY_OUTPUT)
                result = copy_data(series, ndm, nsamp_computed, nsamp_padded,
                                   nsamp_computed).reshape(ndm, nsamp_computed)
        _log_timings(timings)
        return result

    def _execute_segmented(self, nsamps: int, data) -> np.ndarray:
        nchan = self.nchans
        ndm = self.dm_count
        nfreq = nsamps // 2 + 1
        nsamp_computed = int(nsamps - self.max_delay)
        layout = segment_layout(nsamps, self.max_delay)
        logger.debug(_DEBUG)
        for name, value in layout._asdict().items():
            logger.debug("%-18s = %d", name, value)

        timings: dict = {}
        with _timed(timings, "total"):
            with _timed(timings, "init"):
                logger.debug(_MEMORY_ALLOC)
                chunks, nfreq_computed = compute_chunks(
                    layout.nchunk, nsamps, layout.nsamp_good, layout.nfft,
                    layout.nfreq_chunk_padded)
                if self._spin_frequencies.size != layout.nsamp_padded:
                    self._spin_frequencies = generate_spin_frequency_table_chunks(
                        chunks, layout.nsamp_padded, layout.nfreq_chunk,
                        layout.nfreq_chunk_padded, layout.nfft, self.dt)

            with _timed(timings, "preprocessing"):
                logger.debug(_PREPARE_INPUT)
                data_t_nu = self._transpose_input(data, nsamps, layout.nsamp_padded)
                logger.debug(_DEBUG)
                logger.debug("%s", format_chunks(chunks))
                logger.debug("nfreq_computed = %d", nfreq_computed)
                logger.debug("nsamp_computed = %d", nsamp_computed)
                logger.debug(_FFT_R2C)
                data_f_nu = np.zeros((nchan, layout.nsamp_padded // 2), dtype=np.complex64)
                for ichunk in range(layout.nchunk):
                    start = ichunk * layout.nsamp_good
                    column = ichunk * layout.nfreq_chunk_padded
                    data_f_nu[:, column:column + layout.nfreq_chunk] = fft_r2c(
                        data_t_nu[:, start:start + layout.nfft], layout.nfft)
                del data_t_nu

            with _timed(timings, "dedispersion"):
                logger.debug(_FDD_DEDISPERSION)
                data_f_dm = self._dedisperse_segmented(data_f_nu, nfreq, layout)

            with _timed(timings, "postprocessing"):
                logger.debug(_FFT_C2R)
                data_t_dm = np.zeros((ndm, layout.nsamp_padded), dtype=np.float32)
                for ichunk in range(layout.nchunk):
                    column = ichunk * layout.nfreq_chunk_padded
                    data_t_dm[:, 2 * column:2 * column + layout.nfft] = fft_c2r(
                        data_f_dm[:, column:column + layout.nfreq_chunk], layout.nfft)

            with _timed(timings, "output"):
                logger.debug(_COPY_OUTPUT)
                result = copy_chunk_output(data_t_dm, ndm, nsamp_computed,
                                           layout.nsamp_padded, layout.nsamp_good, chunks)
        _log_timings(timings)
        return result

    def _dedisperse_segmented(self, spectra: np.ndarray, nfreq: int,
                              layout: _SegmentLayout) -> np.ndarray:
        chunk_args = (layout.nchunk, layout.nfreq_chunk, layout.nfreq_chunk_padded)
        common = (self.dm_list, self.delay_table, self.dt, self._spin_frequencies, spectra)
        use_segmented_kernel = _env_flag("USE_SEGMENTED_KERNEL")
        if _env_flag("USE_REFERENCE"):
            if use_segmented_kernel:
                logger.debug(">> Running segmented reference kernel")
                return dedisperse_segmented_reference(*common, *chunk_args)
            logger.debug(">> Running reference kernel")
            return dedisperse_reference(*common, nfreq)
        if use_segmented_kernel:
            logger.debug(">> Running segmented optimized kernel")
            return dedisperse_segmented_optimized(*common, *chunk_args)
        logger.debug(">> Running optimized kernel")
        return dedisperse_optimized(*common, nfreq, _CHANNEL_BATCH, False)