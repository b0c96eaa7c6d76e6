"""Frequency-domain dedispersion kernels and FFT helpers.

Spectra are stored channel-major: ``data[ichan, ifreq]``. Dedispersed spectra
are returned DM-major, ``out[idm, ifreq]``, with the same number of columns as
the input so that padded layouts are preserved; columns that are not computed
are zero.
"""

from __future__ import annotations

import numpy as np


def dm_delays(dms, delays, dt: float) -> np.ndarray:
    """Return the float32 delay table ``dms[idm] * delays[ichan] * dt``."""
    dm = np.asarray(dms, dtype=np.float32).ravel()
    delay = np.asarray(delays, dtype=np.float32).ravel()
    return (dm[:, None] * delay[None, :] * np.float32(dt)).astype(np.float32)


def _prepare(dms, delays, data):
    spectra = np.asarray(data, dtype=np.complex64)
    if spectra.ndim != 2:
        raise ValueError("data must be a two-dimensional (nchan, nfreq) array")
    nchan = np.asarray(delays).size
    if spectra.shape[0] != nchan:
        raise ValueError(
            f"data has {spectra.shape[0]} channels but the delay table has {nchan}")
    return spectra


def _spin_frequencies(spin_frequencies, count: int) -> np.ndarray:
    freqs = np.asarray(spin_frequencies, dtype=np.float32).ravel()
    if freqs.size < count:
        raise ValueError("spin frequency table is too short")
    return freqs[:count]


def _phases(freqs: np.ndarray, tdm: np.ndarray) -> np.ndarray:
    phase = 2.0 * np.pi * freqs.astype(np.float64)[:, None] * tdm.astype(np.float64)[None, :]
    return phase.astype(np.float32)


def _unit_phasors(phase: np.ndarray) -> np.ndarray:
    return (np.cos(phase) + 1j * np.sin(phase)).astype(np.complex64)


def _sum_reference(tdm, freqs, samples) -> np.ndarray:
    phasors = _unit_phasors(_phases(freqs, tdm))
    return (samples * phasors).sum(axis=1, dtype=np.complex64)


def _sum_batched(tdm, freqs, samples, batch: int, extrapolate: bool) -> np.ndarray:
    nfreq, nchan = samples.shape
    nouter = nchan // batch
    if extrapolate:
        blocks = tdm.reshape(nouter, batch)
        phase0 = _phases(freqs, blocks[:, 0])
        phase1 = _phases(freqs, blocks[:, 1])
        phasor = _unit_phasors(phase0)
        delta = _unit_phasors((phase1 - phase0).astype(np.float32))
        phasors = np.empty((nfreq, nouter, batch), dtype=np.complex64)
        for inner in range(batch):
            phasors[:, :, inner] = phasor
            phasor = (phasor * delta).astype(np.complex64)
    else:
        phasors = _unit_phasors(_phases(freqs, tdm)).reshape(nfreq, nouter, batch)
    products = samples.reshape(nfreq, nouter, batch) * phasors
    partial = products.sum(axis=1, dtype=np.complex64)
    return partial.sum(axis=1, dtype=np.complex64)


def _check_batch(nchan: int, batch: int, extrapolate: bool) -> None:
    if batch <= 0:
        raise ValueError("batch must be positive")
    if nchan % batch:
        raise ValueError(f"number of channels ({nchan}) is not a multiple of {batch}")
    if extrapolate and batch < 2:
        raise ValueError("extrapolation needs a batch of at least two channels")


def dedisperse_reference(dms, delays, dt: float, spin_frequencies, data,
                         nfreq: int) -> np.ndarray:
    """Straightforward frequency-domain dedispersion of the first ``nfreq`` bins."""
    spectra = _prepare(dms, delays, data)
    if nfreq > spectra.shape[1]:
        raise ValueError("nfreq exceeds the width of the data")
    tdms = dm_delays(dms, delays, dt)
    freqs = _spin_frequencies(spin_frequencies, nfreq)
    samples = spectra[:, :nfreq].T
    out = np.zeros((tdms.shape[0], spectra.shape[1]), dtype=np.complex64)
    for idm, tdm in enumerate(tdms):
        out[idm, :nfreq] = _sum_reference(tdm, freqs, samples)
    return out


def dedisperse_optimized(dms, delays, dt: float, spin_frequencies, data, nfreq: int,
                         batch: int = 32, extrapolate: bool = False) -> np.ndarray:
    """Dedisperse with channels summed in batches of ``batch`` partial sums.

    With ``extrapolate`` the phasors inside a batch are obtained by repeated
    rotation from the first two channels of the batch instead of being
    evaluated directly.
    """
    spectra = _prepare(dms, delays, data)
    if nfreq > spectra.shape[1]:
        raise ValueError("nfreq exceeds the width of the data")
    _check_batch(spectra.shape[0], batch, extrapolate)
    tdms = dm_delays(dms, delays, dt)
    freqs = _spin_frequencies(spin_frequencies, nfreq)
    samples = spectra[:, :nfreq].T
    out = np.zeros((tdms.shape[0], spectra.shape[1]), dtype=np.complex64)
    for idm, tdm in enumerate(tdms):
        out[idm, :nfreq] = _sum_batched(tdm, freqs, samples, batch, extrapolate)
    return out


def _chunk_columns(width: int, nchunk: int, nfreq_chunk: int,
                   nfreq_chunk_padded: int) -> np.ndarray:
    if nfreq_chunk > nfreq_chunk_padded:
        raise ValueError("nfreq_chunk exceeds nfreq_chunk_padded")
    if nchunk and (nchunk - 1) * nfreq_chunk_padded + nfreq_chunk > width:
        raise ValueError("data is too narrow for the requested chunks")
    starts = np.arange(nchunk) * nfreq_chunk_padded
    return (starts[:, None] + np.arange(nfreq_chunk)[None, :]).ravel()


def _dedisperse_segmented(dms, delays, dt, spin_frequencies, data, nchunk,
                          nfreq_chunk, nfreq_chunk_padded, batch):
    spectra = _prepare(dms, delays, data)
    if batch is not None:
        _check_batch(spectra.shape[0], batch, False)
    columns = _chunk_columns(spectra.shape[1], nchunk, nfreq_chunk, nfreq_chunk_padded)
    tdms = dm_delays(dms, delays, dt)
    freqs = np.tile(_spin_frequencies(spin_frequencies, nfreq_chunk), nchunk)
    samples = spectra[:, columns].T
    out = np.zeros((tdms.shape[0], spectra.shape[1]), dtype=np.complex64)
    for idm, tdm in enumerate(tdms):
        if batch is None:
            out[idm, columns] = _sum_reference(tdm, freqs, samples)
        else:
            out[idm, columns] = _sum_batched(tdm, freqs, samples, batch, False)
    return out


def dedisperse_segmented_reference(dms, delays, dt: float, spin_frequencies, data,
                                   nchunk: int, nfreq_chunk: int,
                                   nfreq_chunk_padded: int) -> np.ndarray:
    """Dedisperse every chunk of a segmented spectrum, one chunk after another.

    Chunk ``c`` occupies columns ``c * nfreq_chunk_padded`` onwards, of which
    the first ``nfreq_chunk`` are used, each with spin frequency
    ``spin_frequencies[ifreq]``.
    """
    return _dedisperse_segmented(dms, delays, dt, spin_frequencies, data, nchunk,
                                 nfreq_chunk, nfreq_chunk_padded, None)


def dedisperse_segmented_optimized(dms, delays, dt: float, spin_frequencies, data,
                                   nchunk: int, nfreq_chunk: int,
                                   nfreq_chunk_padded: int) -> np.ndarray:
    """Segmented dedispersion with channels summed in batches of 32."""
    return _dedisperse_segmented(dms, delays, dt, spin_frequencies, data, nchunk,
                                 nfreq_chunk, nfreq_chunk_padded, 32)


def fft_r2c(data, n: int) -> np.ndarray:
    """Real-to-complex FFT of the first ``n`` samples of every row."""
    values = np.asarray(data, dtype=np.float32)
    if values.shape[-1] < n:
        raise ValueError("rows are shorter than the FFT size")
    return np.fft.rfft(values[..., :n], axis=-1).astype(np.complex64)


def fft_c2r(data, n: int, width: int | None = None) -> np.ndarray:
    """Complex-to-real FFT of size ``n`` of every row, scaled by ``1/n``.

    The result has ``width`` columns (``n`` by default); columns past ``n``
    are zero.
    """
    width = n if width is None else width
    if width < n:
        raise ValueError("width must be at least n")
    values = np.asarray(data, dtype=np.complex64)
    nbins = n // 2 + 1
    if values.shape[-1] < nbins:
        raise ValueError("rows hold too few frequency bins for the FFT size")
    result = np.fft.irfft(values[..., :nbins], n=n, axis=-1).astype(np.float32)
    if width == n:
        return result
    padded = np.zeros(result.shape[:-1] + (width,), dtype=np.float32)
    padded[..., :n] = result
    return padded