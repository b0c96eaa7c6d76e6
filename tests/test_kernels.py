import numpy as np
import pytest

from dedisp.kernels import (
    dedisperse_optimized,
    dedisperse_reference,
    dedisperse_segmented_optimized,
    dedisperse_segmented_reference,
    dm_delays,
    fft_c2r,
    fft_r2c,
)


def _random_spectra(nchan, width, seed=0):
    rng = np.random.default_rng(seed)
    return (rng.standard_normal((nchan, width))
            + 1j * rng.standard_normal((nchan, width))).astype(np.complex64)


def _setup(nchan=64, width=40, ndm=3, seed=1):
    rng = np.random.default_rng(seed)
    delays = np.linspace(0.0, 3.0, nchan).astype(np.float32)
    dms = np.linspace(0.0, 2.0, ndm).astype(np.float32)
    spin = (np.arange(width) * 0.05).astype(np.float32)
    data = _random_spectra(nchan, width, seed)
    return dms, delays, spin, data, rng


def test_dm_delays_rows():
    delays = np.array([0.0, 1.0, 2.5], dtype=np.float32)
    table = dm_delays([0.0, 1.0], delays, 0.5)
    assert table.shape == (2, 3)
    assert np.all(table[0] == 0)
    np.testing.assert_allclose(table[1], delays * 0.5)


def test_zero_dm_sums_channels():
    dms, delays, spin, data, _ = _setup()
    out = dedisperse_reference([0.0], delays, 0.001, spin, data, 20)
    np.testing.assert_allclose(out[0, :20], data[:, :20].sum(axis=0), rtol=1e-4, atol=1e-4)
    assert np.all(out[0, 20:] == 0)


def test_reference_output_shape():
    dms, delays, spin, data, _ = _setup()
    out = dedisperse_reference(dms, delays, 0.01, spin, data, 30)
    assert out.shape == (len(dms), data.shape[1])
    assert out.dtype == np.complex64


def test_optimized_matches_reference():
    dms, delays, spin, data, _ = _setup()
    ref = dedisperse_reference(dms, delays, 0.01, spin, data, 30)
    opt = dedisperse_optimized(dms, delays, 0.01, spin, data, 30, 32, False)
    np.testing.assert_allclose(opt, ref, rtol=1e-3, atol=1e-3)


def test_extrapolation_matches_for_linear_delays():
    dms, delays, spin, data, _ = _setup()
    ref = dedisperse_reference(dms, delays, 0.01, spin, data, 30)
    ext = dedisperse_optimized(dms, delays, 0.01, spin, data, 30, 32, True)
    np.testing.assert_allclose(ext, ref, rtol=1e-2, atol=1e-2)


def test_optimized_rejects_partial_batch():
    dms, delays, spin, data, _ = _setup(nchan=40)
    with pytest.raises(ValueError):
        dedisperse_optimized(dms, delays, 0.01, spin, data, 10, 32, False)


def test_extrapolation_needs_two_channels_per_batch():
    dms, delays, spin, data, _ = _setup(nchan=8)
    with pytest.raises(ValueError):
        dedisperse_optimized(dms, delays, 0.01, spin, data, 10, 1, True)


def test_channel_count_mismatch():
    dms, delays, spin, data, _ = _setup()
    with pytest.raises(ValueError):
        dedisperse_reference(dms, delays[:10], 0.01, spin, data, 10)


def test_nfreq_too_large():
    dms, delays, spin, data, _ = _setup()
    with pytest.raises(ValueError):
        dedisperse_reference(dms, delays, 0.01, spin, data, data.shape[1] + 1)


def test_segmented_single_chunk_matches_reference():
    dms, delays, spin, data, _ = _setup(width=32)
    ref = dedisperse_reference(dms, delays, 0.01, spin, data, 20)
    seg = dedisperse_segmented_reference(dms, delays, 0.01, spin, data, 1, 20, 32)
    np.testing.assert_allclose(seg, ref, rtol=1e-5, atol=1e-5)


def test_segmented_chunks_use_repeated_frequencies():
    dms, delays, spin, data, _ = _setup(width=48)
    out = dedisperse_segmented_reference(dms, delays, 0.01, spin, data, 3, 10, 16)
    for ichunk in range(3):
        block = data[:, ichunk * 16:ichunk * 16 + 16]
        expected = dedisperse_reference(dms, delays, 0.01, spin, block, 10)
        np.testing.assert_allclose(out[:, ichunk * 16:ichunk * 16 + 16], expected,
                                   rtol=1e-5, atol=1e-5)


def test_segmented_optimized_matches_segmented_reference():
    dms, delays, spin, data, _ = _setup(width=48)
    ref = dedisperse_segmented_reference(dms, delays, 0.01, spin, data, 3, 10, 16)
    opt = dedisperse_segmented_optimized(dms, delays, 0.01, spin, data, 3, 10, 16)
    np.testing.assert_allclose(opt, ref, rtol=1e-3, atol=1e-3)


def test_segmented_rejects_narrow_data():
    dms, delays, spin, data, _ = _setup(width=40)
    with pytest.raises(ValueError):
        dedisperse_segmented_reference(dms, delays, 0.01, spin, data, 3, 10, 16)


def test_fft_round_trip():
    rng = np.random.default_rng(3)
    signal = rng.standard_normal((4, 64)).astype(np.float32)
    spectrum = fft_r2c(signal, 64)
    assert spectrum.shape == (4, 33)
    back = fft_c2r(spectrum, 64, 80)
    assert back.shape == (4, 80)
    np.testing.assert_allclose(back[:, :64], signal, atol=1e-4)
    assert np.all(back[:, 64:] == 0)


def test_fft_r2c_constant_has_only_dc():
    spectrum = fft_r2c(np.ones((1, 16), dtype=np.float32), 16)
    assert spectrum[0, 0] == pytest.approx(16.0)
    assert np.allclose(spectrum[0, 1:], 0, atol=1e-5)


def test_fft_errors():
    with pytest.raises(ValueError):
        fft_r2c(np.zeros((2, 8)), 16)
    with pytest.raises(ValueError):
        fft_c2r(np.zeros((2, 9), dtype=np.complex64), 16, 8)


def test_pulse_is_aligned_by_dedispersion():
    n, dt = 16, 1.0
    delays = np.array([0, 1, 2, 3], dtype=np.float32)
    signal = np.zeros((4, n), dtype=np.float32)
    t0 = 5
    for ichan, delay in enumerate(delays.astype(int)):
        signal[ichan, t0 + delay] = 1.0
    spectra = fft_r2c(signal, n)
    nfreq = n // 2 + 1
    spin = np.arange(nfreq, dtype=np.float32) / (n * dt)
    out = dedisperse_reference([1.0], delays, dt, spin, spectra, nfreq)
    series = fft_c2r(out, n)
    assert int(np.argmax(series[0])) == t0
    assert series[0, t0] == pytest.approx(len(delays), abs=1e-3)
    assert np.allclose(np.delete(series[0], t0), 0, atol=1e-3)